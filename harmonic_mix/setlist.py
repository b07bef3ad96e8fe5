"""Ordered, duplicate-free set-list of track ids."""

from typing import Iterator, List

from loguru import logger

from .models import Track
from .track_store import TrackStore


class Setlist:
    """The tracks chosen for the actual performance, in the order they were added."""

    def __init__(self) -> None:
        self._ids: List[str] = []

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._ids

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    def add(self, track_id: str) -> bool:
        if track_id in self._ids:
            logger.debug(f"Already in set-list: {track_id}")
            return False
        self._ids.append(track_id)
        return True

    def remove(self, track_id: str) -> bool:
        if track_id not in self._ids:
            return False
        self._ids.remove(track_id)
        return True

    def tracks(self, store: TrackStore) -> List[Track]:
        """Resolve ids against the store so edits show up in the set-list."""
        resolved = (store.get(track_id) for track_id in self._ids)
        return [t for t in resolved if t is not None]
