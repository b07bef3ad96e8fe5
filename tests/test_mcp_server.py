"""Tests for the MCP server's library query helper."""

import pytest
from harmonic_mix.demo import DEMO_TRACKS
from harmonic_mix.mcp_server import _find_track, _query_library
from harmonic_mix.models import FilterCriteria, NumericRange, SortSpec
from harmonic_mix.recommender import HarmonicRecommender
from harmonic_mix.session import MixSession


@pytest.fixture
def session():
    return MixSession(recommender=HarmonicRecommender(), tracks=DEMO_TRACKS)


class TestQueryLibrary:
    def test_filters_and_sorts(self, session):
        tracks = _query_library(session, key="a", bpm_min=123, sort_by="bpm", descending=True)
        assert [t.id for t in tracks] == ["demo5.mp3", "demo1.mp3", "demo4.mp3"]

    def test_leaves_session_view_alone(self, session):
        session.set_filter(FilterCriteria(energy=NumericRange(min=9)))
        session.set_sort("title")

        _query_library(session, key="8", sort_by="energy", descending=True)

        assert session.criteria == FilterCriteria(energy=NumericRange(min=9))
        assert session.sort == SortSpec(field="title", direction="ascending")
        assert [line.split(",")[0] for line in session.export().splitlines()[1:]] == ["demo5.mp3"]

    def test_unknown_sort_field_falls_back_to_artist(self, session):
        tracks = _query_library(session, sort_by="filename")
        assert tracks[0].artist == "Aqua Funk"


class TestFindTrack:
    def test_by_id_or_title(self, session):
        assert _find_track(session, "demo3.mp3").title == "Deep Ocean Groove"
        assert _find_track(session, "neon").id == "demo2.mp3"
        assert _find_track(session, "nothing like this") is None
