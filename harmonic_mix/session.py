"""
Mix Session Controller

Owns the whole application state (library, view criteria, edit session,
selection, suggestions, set-list) and exposes the operations a UI or CLI
calls. Nothing here is global: every surface holds its own MixSession.
"""

import asyncio
from typing import Iterable, List, Literal, Optional

from loguru import logger

from .ai_integration import ClaudeAnalyzer, ClaudeRecommender
from .camelot import CamelotWheel
from .collaborators import SUGGESTION_LIMIT, Analyzer, Recommender
from .config import Settings
from .edit_session import EditSession
from .export import serialize
from .models import (
    FilterCriteria,
    ImportReport,
    SessionSnapshot,
    SortField,
    SortSpec,
    Suggestion,
    Track,
)
from .orchestrator import RecommendationOrchestrator
from .recommender import HarmonicRecommender
from .track_store import TrackStore

ExportView = Literal["library", "setlist"]


class MixSession:
    """Single controller for one user's library and set."""

    def __init__(
        self,
        recommender: Recommender,
        analyzer: Optional[Analyzer] = None,
        tracks: Optional[Iterable[Track]] = None,
        camelot: Optional[CamelotWheel] = None,
        limit: int = SUGGESTION_LIMIT,
    ) -> None:
        self.store = TrackStore(tracks)
        self.edit_session = EditSession(self.store)
        self.orchestrator = RecommendationOrchestrator(
            store=self.store,
            recommender=recommender,
            analyzer=analyzer,
            edit_session=self.edit_session,
            camelot=camelot,
            limit=limit,
        )
        self.criteria = FilterCriteria()
        self.sort = SortSpec()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MixSession":
        """Wire Claude collaborators when an API key is set, the local recommender otherwise."""
        settings = settings or Settings.from_env()
        analyzer = ClaudeAnalyzer(settings)
        if settings.ai_enabled:
            recommender = ClaudeRecommender(settings)
            logger.info("Claude API key found. AI recommendations enabled.")
        else:
            recommender = HarmonicRecommender(limit=settings.suggestion_limit)
            logger.warning("No ANTHROPIC_API_KEY set. Using rule-based recommendations; file analysis unavailable.")
        return cls(recommender=recommender, analyzer=analyzer, limit=settings.suggestion_limit)

    # ------------------------------------------------------------------
    # Library
    # ------------------------------------------------------------------

    async def add_files(self, filenames: Iterable[str]) -> ImportReport:
        return await self.orchestrator.import_files(filenames)

    def seed(self, tracks: Iterable[Track]) -> List[Track]:
        """Add tracks directly, without analysis."""
        added = self.store.add_many(tracks)
        logger.info(f"Seeded {len(added)} track(s)")
        return added

    def view(self) -> List[Track]:
        return self.store.view(self.criteria, self.sort)

    def set_filter(self, criteria: FilterCriteria) -> None:
        self.criteria = criteria

    def reset_filter(self) -> None:
        self.criteria = FilterCriteria()

    def set_sort(self, field: SortField) -> SortSpec:
        self.sort = self.sort.toggled(field)
        return self.sort

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, track_or_id) -> Optional[asyncio.Task]:
        track = self._resolve(track_or_id)
        if track is None:
            return None
        return self.orchestrator.select_track(track)

    def select_suggestion(self, suggestion: Suggestion) -> Optional[asyncio.Task]:
        return self.orchestrator.select_suggestion(suggestion)

    async def wait_for_suggestions(self) -> List[Suggestion]:
        return await self.orchestrator.wait_for_suggestions()

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def start_edit(self, track_id: str, field: str) -> bool:
        return self.edit_session.start(track_id, field)

    def commit_edit(self, raw_value: str) -> Optional[Track]:
        """
        Commit the open edit. Returns the updated track, or None if nothing changed.

        Editing key, BPM or energy of the selected track schedules a new
        recommendation request, so that commit must run inside the event loop.
        """
        target = self.edit_session.target
        if target is not None and self.orchestrator.invalidates(target.track_id, target.field):
            # Raises before the store changes when no loop is running
            asyncio.get_running_loop()
        outcome = self.edit_session.commit(raw_value)
        if outcome is None or outcome.track is None:
            return None
        self.orchestrator.track_edited(outcome.track, outcome.target.field)
        return outcome.track

    def cancel_edit(self) -> None:
        self.edit_session.cancel()

    # ------------------------------------------------------------------
    # Set-list + export
    # ------------------------------------------------------------------

    def add_to_setlist(self, track_or_id) -> bool:
        track = self._resolve(track_or_id)
        return track is not None and self.orchestrator.add_to_setlist(track)

    def remove_from_setlist(self, track_id: str) -> bool:
        return self.orchestrator.remove_from_setlist(track_id)

    def setlist_tracks(self) -> List[Track]:
        return self.orchestrator.setlist_tracks()

    def export(self, view: ExportView = "library") -> str:
        if view == "setlist":
            return serialize(self.setlist_tracks())
        return serialize(self.view())

    def dismiss_error(self) -> None:
        self.orchestrator.dismiss_error()

    def snapshot(self) -> SessionSnapshot:
        o = self.orchestrator
        return SessionSnapshot(
            tracks=self.view(),
            library_size=len(self.store),
            selected=o.selected,
            suggestions=list(o.suggestions),
            setlist=self.setlist_tracks(),
            filter=self.criteria,
            sort=self.sort,
            editing=self.edit_session.target,
            is_analyzing=o.is_analyzing,
            is_suggesting=o.is_suggesting,
            error=o.error,
        )

    def _resolve(self, track_or_id) -> Optional[Track]:
        if isinstance(track_or_id, Track):
            return self.store.get(track_or_id.id)
        return self.store.get(track_or_id)
