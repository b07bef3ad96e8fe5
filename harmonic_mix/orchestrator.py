"""
Recommendation Workflow Orchestrator

Drives the analyzer and recommender collaborators and reconciles their
results back into the library, the selection and the suggestion list.

All state lives on one asyncio event loop. Recommendation requests run as
tasks tagged with the request epoch that was current when they were issued;
a result (or failure) is applied only if that epoch is still current, so a
late answer for an old selection can never overwrite the newest one.
"""

import asyncio
from pathlib import PurePath
from typing import Iterable, List, Optional, Set

from loguru import logger

from .camelot import CamelotWheel
from .collaborators import SUGGESTION_LIMIT, Analyzer, Recommender, parse_analysis, parse_suggestions
from .edit_session import EditSession
from .errors import AnalysisError, RecommendationError
from .models import HARMONIC_FIELDS, AnalyzedTrack, ImportReport, Suggestion, Track
from .setlist import Setlist
from .track_store import TrackStore

ANALYSIS_FAILED_MESSAGE = "Failed to analyze {failed} of {total} track(s): {names}"
SUGGESTIONS_FAILED_MESSAGE = (
    "Failed to get suggestions. The model might be unavailable or the request timed out."
)


class RecommendationOrchestrator:
    """
    Coordinates selection, suggestions, imports and the set-list.

    Architecture:
    - select_track() sets the selection and schedules one recommendation task
    - each task carries the epoch it was issued under
    - on completion, stale epochs are discarded; the current one is annotated
      with the Camelot rules and published as ``suggestions``
    - collaborator failures become a single advisory ``error`` message
    """

    def __init__(
        self,
        store: TrackStore,
        recommender: Recommender,
        analyzer: Optional[Analyzer] = None,
        edit_session: Optional[EditSession] = None,
        camelot: Optional[CamelotWheel] = None,
        setlist: Optional[Setlist] = None,
        limit: int = SUGGESTION_LIMIT,
    ) -> None:
        self.store = store
        self.recommender = recommender
        self.analyzer = analyzer
        self.edit_session = edit_session or EditSession(store)
        self.camelot = camelot or CamelotWheel()
        self.setlist = setlist or Setlist()
        self.limit = limit

        self.selected: Optional[Track] = None
        self.suggestions: List[Suggestion] = []
        self.error: Optional[str] = None

        self._epoch = 0
        self._current_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._analyzing = 0

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def is_suggesting(self) -> bool:
        return self._current_task is not None and not self._current_task.done()

    @property
    def is_analyzing(self) -> bool:
        return self._analyzing > 0

    def dismiss_error(self) -> None:
        self.error = None

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_track(self, track: Track) -> Optional[asyncio.Task]:
        """
        Make ``track`` the current track and request suggestions for it.

        Ignored while an edit on a different track is in progress. Must be
        called from a running event loop; returns the scheduled request task.
        """
        if self.edit_session.blocks_selection(track.id):
            logger.debug(f"Selection of {track.id} ignored: another track is being edited")
            return None

        loop = asyncio.get_running_loop()
        self.selected = self.store.get(track.id) or track
        logger.info(f"Selected {self.selected.label()}")
        return self._refresh(loop)

    def select_suggestion(self, suggestion: Suggestion) -> Optional[asyncio.Task]:
        """Select the library track a suggestion points at; no-op if it no longer resolves."""
        track = self.store.find(suggestion.title, suggestion.artist)
        if track is None:
            logger.debug(f"Suggestion '{suggestion.artist} - {suggestion.title}' no longer in library")
            return None
        return self.select_track(track)

    def track_edited(self, track: Track, field: str) -> Optional[asyncio.Task]:
        """
        Reconcile a committed edit with the selection.

        Editing key, BPM or energy of the selected track invalidates its
        suggestions and issues exactly one new request.
        """
        if self.selected is None or self.selected.id != track.id:
            return None
        if not self.invalidates(track.id, field):
            self.selected = track
            return None

        loop = asyncio.get_running_loop()
        self.selected = track
        logger.info(f"{field} of the selected track changed, refreshing suggestions")
        return self._refresh(loop)

    def invalidates(self, track_id: str, field: str) -> bool:
        """True when editing this cell makes the current suggestions stale."""
        return (
            self.selected is not None
            and self.selected.id == track_id
            and field in HARMONIC_FIELDS
        )

    def _refresh(self, loop: asyncio.AbstractEventLoop) -> asyncio.Task:
        self._epoch += 1
        self.suggestions = []
        self.error = None

        task = loop.create_task(
            self._run_request(self.selected, self.store.tracks, self._epoch)
        )
        self._current_task = task
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _run_request(self, track: Track, library: List[Track], epoch: int) -> None:
        try:
            suggestions = await self.request_recommendations(track, library)
        except RecommendationError as e:
            if epoch != self._epoch:
                logger.debug(f"Ignoring failure of stale request (epoch {epoch}): {e}")
                return
            logger.error(f"Recommendation failed for {track.label()}: {e}")
            self.error = SUGGESTIONS_FAILED_MESSAGE
            return

        if epoch != self._epoch:
            logger.debug(f"Discarding stale suggestions for {track.id} (epoch {epoch}, now {self._epoch})")
            return

        self.suggestions = [self._annotate(track, s) for s in suggestions]
        logger.info(f"{len(self.suggestions)} suggestion(s) for {track.label()}")

    async def request_recommendations(self, track: Track, library: Iterable[Track]) -> List[Suggestion]:
        """
        Ask the recommender what to mix in after ``track``.

        The track itself is excluded from the candidates; with no candidates
        left the recommender is not contacted. Raises RecommendationError.
        """
        candidates = [t for t in library if t.id != track.id]
        if not candidates:
            return []

        try:
            payload = await self.recommender.recommend(track, candidates)
        except RecommendationError:
            raise
        except Exception as e:
            raise RecommendationError(f"Recommender failed: {e}") from e

        return parse_suggestions(payload, limit=self.limit)

    def _annotate(self, current: Track, suggestion: Suggestion) -> Suggestion:
        resolved = self.store.find(suggestion.title, suggestion.artist)
        if resolved is None:
            return suggestion
        return suggestion.model_copy(
            update={"compatibility": self.camelot.assess(current, resolved)}
        )

    async def wait_for_suggestions(self) -> List[Suggestion]:
        """Wait until the newest request has settled and return its suggestions."""
        while self._current_task is not None and not self._current_task.done():
            await self._current_task
        return list(self.suggestions)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def import_files(self, filenames: Iterable[str]) -> ImportReport:
        """
        Analyze every new file and merge the results into the library.

        Files already in the library or repeated in the batch are skipped
        without calling the analyzer. Every file is attempted; failures are
        reported together once the batch is done.
        """
        report = ImportReport()
        seen: Set[str] = set()
        analyzed: List[Track] = []
        attempted = 0

        self._analyzing += 1
        self.error = None
        try:
            for filename in filenames:
                track_id = PurePath(filename).name
                if not track_id:
                    continue
                if track_id in self.store or track_id in seen:
                    report.skipped.append(track_id)
                    continue
                seen.add(track_id)
                attempted += 1

                try:
                    result = await self._analyze(track_id)
                except AnalysisError as e:
                    report.failed[track_id] = str(e)
                    continue
                analyzed.append(result.with_id(track_id))
        finally:
            self._analyzing -= 1

        # Single merge point: ids added by an overlapping batch are rejected here
        report.added = self.store.add_many(analyzed)
        added_ids = {t.id for t in report.added}
        report.skipped.extend(t.id for t in analyzed if t.id not in added_ids)

        if report.failed:
            self.error = ANALYSIS_FAILED_MESSAGE.format(
                failed=len(report.failed),
                total=attempted,
                names=", ".join(report.failed),
            )
            logger.error(self.error)

        logger.info(
            f"Imported {len(report.added)} track(s), "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed"
        )
        return report

    async def _analyze(self, filename: str) -> AnalyzedTrack:
        if self.analyzer is None:
            raise AnalysisError("No analyzer configured", filename=filename)
        try:
            payload = await self.analyzer.analyze(filename)
        except AnalysisError:
            raise
        except Exception as e:
            logger.error(f"Analyzer crashed on {filename}: {e}")
            raise AnalysisError(f"Could not analyze '{filename}': {e}", filename=filename) from e
        return parse_analysis(payload, filename=filename)

    # ------------------------------------------------------------------
    # Set-list
    # ------------------------------------------------------------------

    def add_to_setlist(self, track: Track) -> bool:
        if track.id not in self.store:
            logger.debug(f"Not adding unknown track {track.id} to the set-list")
            return False
        return self.setlist.add(track.id)

    def remove_from_setlist(self, track_id: str) -> bool:
        return self.setlist.remove(track_id)

    def setlist_tracks(self) -> List[Track]:
        return self.setlist.tracks(self.store)
