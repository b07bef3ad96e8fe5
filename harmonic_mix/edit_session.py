"""
Inline Edit Session

A two-state machine (Idle | Editing) that allows at most one cell of the
library to be under edit. Commits go through the TrackStore, so an invalid
numeric value silently cancels the edit and keeps the old value.
"""

from typing import Literal, Optional, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict

from .models import EDITABLE_FIELDS, EditTarget, Track
from .track_store import TrackStore


class Idle(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["idle"] = "idle"


class Editing(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["editing"] = "editing"
    target: EditTarget


EditState = Union[Idle, Editing]

IDLE = Idle()


class EditOutcome(BaseModel):
    """Result of a commit. ``track`` is None when the value was rejected."""

    target: EditTarget
    track: Optional[Track] = None

    @property
    def applied(self) -> bool:
        return self.track is not None


class EditSession:
    """Guards the single in-progress inline edit."""

    def __init__(self, store: TrackStore) -> None:
        self.store = store
        self.state: EditState = IDLE

    @property
    def target(self) -> Optional[EditTarget]:
        return self.state.target if isinstance(self.state, Editing) else None

    @property
    def is_editing(self) -> bool:
        return isinstance(self.state, Editing)

    def start(self, track_id: str, field: str) -> bool:
        """
        Begin editing one cell.

        While another cell is under edit the request is ignored (returns False);
        asking for the cell already being edited is accepted without change.
        """
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Field is not editable: {field}")

        target = EditTarget(track_id=track_id, field=field)
        if isinstance(self.state, Editing):
            if self.state.target == target:
                return True
            logger.debug(
                f"Ignoring edit of {track_id}.{field}: "
                f"{self.state.target.track_id}.{self.state.target.field} is being edited"
            )
            return False

        if track_id not in self.store:
            logger.debug(f"Ignoring edit of unknown track {track_id}")
            return False

        self.state = Editing(target=target)
        return True

    def blocks_selection(self, track_id: str) -> bool:
        """True while a *different* track has unsaved input."""
        target = self.target
        return target is not None and target.track_id != track_id

    def commit(self, raw_value: str) -> Optional[EditOutcome]:
        """Apply the edit and return to Idle. Returns None when nothing was being edited."""
        target = self.target
        if target is None:
            return None

        self.state = IDLE
        updated = self.store.update(target.track_id, target.field, raw_value)
        if updated is None:
            logger.debug(f"Edit of {target.track_id}.{target.field} discarded")
        return EditOutcome(target=target, track=updated)

    def cancel(self) -> None:
        self.state = IDLE
