"""
Track Library Store

Owns the in-memory track collection: id-unique inserts in arrival order,
validated field edits, and the filtered + sorted library view.
"""

from typing import Dict, Iterator, List, Optional, Iterable

from loguru import logger

from .camelot import CamelotWheel
from .errors import EditValidationError
from .models import Track, FilterCriteria, SortSpec


class TrackStore:
    """Ordered collection of tracks keyed by id."""

    def __init__(self, tracks: Optional[Iterable[Track]] = None) -> None:
        self._tracks: List[Track] = []
        self._id_lookup: Dict[str, int] = {}
        if tracks:
            self.add_many(tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(list(self._tracks))

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._id_lookup

    @property
    def tracks(self) -> List[Track]:
        return list(self._tracks)

    def get(self, track_id: str) -> Optional[Track]:
        index = self._id_lookup.get(track_id)
        return self._tracks[index] if index is not None else None

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def add(self, track: Track) -> bool:
        """Append a track. Returns False (no-op) when its id is already present."""
        if track.id in self._id_lookup:
            logger.debug(f"Skipping add: {track.id} already in library")
            return False
        self._id_lookup[track.id] = len(self._tracks)
        self._tracks.append(track)
        return True

    def add_many(self, tracks: Iterable[Track]) -> List[Track]:
        """Add a batch; the first occurrence of each id wins. Returns the tracks added."""
        return [t for t in tracks if self.add(t)]

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def update(self, track_id: str, field: str, raw_value: str) -> Optional[Track]:
        """
        Replace one field of a track.

        Returns the updated track, or None when the id is unknown or the value
        doesn't parse for the field (the original value is kept).
        """
        index = self._id_lookup.get(track_id)
        if index is None:
            return None

        try:
            updated = self._tracks[index].with_field(field, raw_value)
        except EditValidationError as e:
            logger.debug(f"Edit rejected for {track_id}: {e}")
            return None

        self._tracks[index] = updated
        logger.debug(f"Updated {track_id}.{field} -> {getattr(updated, field)!r}")
        return updated

    # ------------------------------------------------------------------
    # Lookup + view
    # ------------------------------------------------------------------

    def find(self, title: str, artist: str) -> Optional[Track]:
        """First track with exactly this title and artist, in insertion order."""
        return next(
            (t for t in self._tracks if t.title == title and t.artist == artist),
            None,
        )

    def view(
        self,
        criteria: Optional[FilterCriteria] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Track]:
        """
        Filter, then stable-sort by the active column.

        Title and artist compare case-insensitively, and keys sort by wheel
        position (1A, 1B, 2A, ...) with non-Camelot keys last, rather than by
        raw string comparison.
        """
        criteria = criteria or FilterCriteria()
        sort = sort or SortSpec()

        filtered = [t for t in self._tracks if criteria.matches(t)]
        return sorted(
            filtered,
            key=_sort_key(sort.field),
            reverse=sort.direction == "descending",
        )


def _sort_key(field: str):
    if field in ("bpm", "energy"):
        return lambda t: getattr(t, field)
    if field == "key":
        return _camelot_order
    return lambda t: getattr(t, field).casefold()


def _camelot_order(track: Track) -> tuple:
    # Valid keys in wheel order (1A, 1B, 2A, ...), anything else after them
    parsed = CamelotWheel.parse_key(track.key)
    if parsed:
        return (0, parsed[0], parsed[1], "")
    return (1, 0, "", track.key.casefold())
