"""HTTP tests for the web app, driven through a session with fake collaborators."""

import csv
import io

import pytest
from fastapi.testclient import TestClient
from harmonic_mix.app import create_app
from harmonic_mix.demo import DEMO_TRACKS
from harmonic_mix.models import AnalyzedTrack
from harmonic_mix.recommender import HarmonicRecommender
from harmonic_mix.session import MixSession


class FilenameAnalyzer:
    async def analyze(self, filename):
        if filename.startswith("broken"):
            raise RuntimeError("unreadable")
        return AnalyzedTrack(title=filename.rsplit(".", 1)[0], artist="Uploader", key="8A", bpm=124, energy=6)


@pytest.fixture
def session():
    return MixSession(recommender=HarmonicRecommender(), analyzer=FilenameAnalyzer(), tracks=DEMO_TRACKS)


@pytest.fixture
def client(session):
    with TestClient(create_app(session)) as test_client:
        yield test_client


class TestLibrary:
    def test_state_lists_demo_library(self, client):
        state = client.get("/api/state").json()
        assert state["library_size"] == 6
        assert state["sort"] == {"field": "artist", "direction": "ascending"}
        assert state["tracks"][0]["artist"] == "Aqua Funk"

    def test_add_files_reports_each_outcome(self, client):
        response = client.post("/api/library/files", json={
            "filenames": ["demo1.mp3", "fresh.mp3", "broken.mp3"],
        })
        body = response.json()
        assert [t["id"] for t in body["report"]["added"]] == ["fresh.mp3"]
        assert body["report"]["skipped"] == ["demo1.mp3"]
        assert "broken.mp3" in body["report"]["failed"]
        assert body["state"]["library_size"] == 7
        assert body["state"]["error"].startswith("Failed to analyze 1 of 2")

    def test_demo_load_is_idempotent(self, client):
        assert client.post("/api/library/demo").json()["added"] == 0

    def test_filter_and_reset(self, client):
        body = client.put("/api/library/filter", json={"key": "a", "bpm": {"min": 123}}).json()
        assert {t["id"] for t in body["state"]["tracks"]} == {"demo1.mp3", "demo4.mp3", "demo5.mp3"}

        body = client.delete("/api/library/filter").json()
        assert len(body["state"]["tracks"]) == 6

    def test_sort_toggles(self, client):
        first = client.post("/api/library/sort", json={"field": "bpm"}).json()["state"]
        assert [t["bpm"] for t in first["tracks"]][0] == 122
        second = client.post("/api/library/sort", json={"field": "bpm"}).json()["state"]
        assert second["sort"]["direction"] == "descending"
        assert [t["bpm"] for t in second["tracks"]][0] == 128

    def test_invalid_sort_field(self, client):
        assert client.post("/api/library/sort", json={"field": "id"}).status_code == 422


class TestSelection:
    def test_select_then_wait_for_suggestions(self, client):
        body = client.post("/api/select", json={"track_id": "demo1.mp3"}).json()
        assert body["accepted"] is True
        assert body["state"]["selected"]["id"] == "demo1.mp3"

        state = client.get("/api/suggestions", params={"wait": True}).json()["state"]
        assert len(state["suggestions"]) == 3
        assert not state["is_suggesting"]
        assert all(s["compatibility"] is not None for s in state["suggestions"])

    def test_select_suggestion(self, client):
        client.post("/api/select", json={"track_id": "demo1.mp3"})
        suggestion = client.get("/api/suggestions", params={"wait": True}).json()["state"]["suggestions"][0]

        body = client.post("/api/select/suggestion", json=suggestion).json()
        assert body["accepted"] is True
        assert body["state"]["selected"]["title"] == suggestion["title"]

    def test_unknown_track(self, client):
        assert client.post("/api/select", json={"track_id": "nope.mp3"}).status_code == 404


class TestEditing:
    def test_commit_edit(self, client):
        assert client.post("/api/edit/start", json={"track_id": "demo2.mp3", "field": "bpm"}).json()["accepted"]
        body = client.post("/api/edit/commit", json={"value": "126"}).json()
        assert body["updated"] is True
        assert body["state"]["editing"] is None
        bpms = {t["id"]: t["bpm"] for t in body["state"]["tracks"]}
        assert bpms["demo2.mp3"] == 126

    def test_invalid_commit_keeps_value(self, client):
        client.post("/api/edit/start", json={"track_id": "demo2.mp3", "field": "energy"})
        body = client.post("/api/edit/commit", json={"value": "eleven"}).json()
        assert body["updated"] is False
        energies = {t["id"]: t["energy"] for t in body["state"]["tracks"]}
        assert energies["demo2.mp3"] == 8

    def test_selection_blocked_while_editing(self, client):
        client.post("/api/edit/start", json={"track_id": "demo2.mp3", "field": "title"})
        body = client.post("/api/select", json={"track_id": "demo1.mp3"}).json()
        assert body["accepted"] is False
        assert body["state"]["selected"] is None

        client.post("/api/edit/cancel")
        assert client.post("/api/select", json={"track_id": "demo1.mp3"}).json()["accepted"] is True


class TestSetlistAndExport:
    def test_setlist_add_remove(self, client):
        assert client.post("/api/setlist", json={"track_id": "demo3.mp3"}).json()["added"] is True
        body = client.post("/api/setlist", json={"track_id": "demo3.mp3"}).json()
        assert body["added"] is False
        assert len(body["state"]["setlist"]) == 1

        assert client.delete("/api/setlist/demo3.mp3").json()["removed"] is True
        assert client.get("/api/state").json()["setlist"] == []

    def test_setlist_unknown_track(self, client):
        assert client.post("/api/setlist", json={"track_id": "ghost.mp3"}).status_code == 404

    def test_export_setlist_csv(self, client):
        client.post("/api/setlist", json={"track_id": "demo5.mp3"})
        client.post("/api/setlist", json={"track_id": "demo1.mp3"})

        response = client.get("/api/export")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]

        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == ["Filename", "Title", "Artist", "Key", "BPM", "Energy"]
        assert rows[1] == ["demo5.mp3", "Rhythm of the Dunes", "Desert Wave", "10A", "128", "9"]
        assert rows[2][0] == "demo1.mp3"

    def test_export_library_view(self, client):
        client.put("/api/library/filter", json={"energy": {"min": 9}})
        rows = list(csv.reader(io.StringIO(client.get("/api/export", params={"view": "library"}).text)))
        assert [r[0] for r in rows[1:]] == ["demo5.mp3"]

    def test_dismiss_error(self, client):
        client.post("/api/library/files", json={"filenames": ["broken.mp3"]})
        body = client.post("/api/error/dismiss").json()
        assert body["state"]["error"] is None
