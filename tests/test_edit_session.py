"""Unit tests for the single-cell edit state machine."""

import pytest
from harmonic_mix.edit_session import EditSession, Editing, Idle
from harmonic_mix.models import EditTarget, Track
from harmonic_mix.track_store import TrackStore


@pytest.fixture
def store():
    return TrackStore([
        Track(id="a", title="Alpha", artist="X", key="8A", bpm=120, energy=5),
        Track(id="b", title="Bravo", artist="Y", key="9A", bpm=124, energy=6),
    ])


@pytest.fixture
def session(store):
    return EditSession(store)


class TestStart:
    def test_starts_idle(self, session):
        assert isinstance(session.state, Idle)
        assert session.target is None

    def test_idle_to_editing(self, session):
        assert session.start("a", "bpm") is True
        assert isinstance(session.state, Editing)
        assert session.target == EditTarget(track_id="a", field="bpm")

    def test_same_cell_accepted(self, session):
        session.start("a", "bpm")
        assert session.start("a", "bpm") is True
        assert session.target == EditTarget(track_id="a", field="bpm")

    def test_other_cell_ignored(self, session):
        session.start("a", "bpm")
        assert session.start("b", "title") is False
        assert session.start("a", "title") is False
        assert session.target == EditTarget(track_id="a", field="bpm")

    def test_unknown_track_ignored(self, session):
        assert session.start("zzz", "title") is False
        assert not session.is_editing

    def test_id_field_rejected(self, session):
        with pytest.raises(ValueError):
            session.start("a", "id")


class TestSelectionGuard:
    def test_idle_blocks_nothing(self, session):
        assert not session.blocks_selection("a")

    def test_blocks_other_tracks_only(self, session):
        session.start("a", "key")
        assert session.blocks_selection("b")
        assert not session.blocks_selection("a")


class TestCommit:
    def test_commit_mutates_and_returns_idle(self, session, store):
        session.start("a", "bpm")
        outcome = session.commit("126")
        assert outcome.applied
        assert outcome.track.bpm == 126
        assert store.get("a").bpm == 126
        assert isinstance(session.state, Idle)

    def test_non_numeric_commit_is_silent_cancel(self, session, store):
        session.start("a", "energy")
        outcome = session.commit("loud")
        assert outcome is not None
        assert not outcome.applied
        assert store.get("a").energy == 5
        assert isinstance(session.state, Idle)

    def test_commit_when_idle(self, session):
        assert session.commit("x") is None

    def test_new_edit_allowed_after_commit(self, session):
        session.start("a", "title")
        session.commit("Renamed")
        assert session.start("b", "title") is True


class TestCancel:
    def test_cancel_leaves_track_untouched(self, session, store):
        session.start("a", "title")
        session.cancel()
        assert isinstance(session.state, Idle)
        assert store.get("a").title == "Alpha"
        assert session.start("b", "key") is True
