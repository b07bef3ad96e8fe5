"""
Data Models for Harmonic Mix

Tracks, suggestions, library view criteria, and the validated payloads
exchanged with the analyzer and recommender collaborators.
"""

import math
from typing import Optional, List, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import EditValidationError


# ---------------------------------------------------------------------------
# Field vocabularies
# ---------------------------------------------------------------------------

SortField = Literal["title", "artist", "key", "bpm", "energy"]
SortDirection = Literal["ascending", "descending"]
EditableField = Literal["title", "artist", "key", "bpm", "energy"]

SORT_FIELDS: tuple = ("title", "artist", "key", "bpm", "energy")
EDITABLE_FIELDS: tuple = ("title", "artist", "key", "bpm", "energy")
NUMERIC_FIELDS: tuple = ("bpm", "energy")

# Edits to these fields change what the recommender should suggest
HARMONIC_FIELDS: tuple = ("key", "bpm", "energy")


# ---------------------------------------------------------------------------
# Track models
# ---------------------------------------------------------------------------

class AnalyzedTrack(BaseModel):
    """Analyzer output: everything a Track has except its id."""

    title: str = Field(..., description="Track title")
    artist: str = Field(..., description="Track artist")
    key: str = Field(..., min_length=1, description="Camelot key (e.g. '8A', '12B')")
    bpm: float = Field(..., gt=0, allow_inf_nan=False, description="Beats per minute")
    energy: int = Field(..., ge=1, le=10, description="Energy level 1-10")

    @field_validator("key")
    @classmethod
    def _key_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("key must not be blank")
        return v.strip()

    def with_id(self, track_id: str) -> "Track":
        return Track(id=track_id, **self.model_dump())


class Track(BaseModel):
    """A library track. Immutable: edits produce a new Track with the same id."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable id derived from the source filename")
    title: str = Field(..., description="Track title")
    artist: str = Field(..., description="Track artist")
    key: str = Field(..., description="Camelot key (e.g. '8A', '12B')")
    bpm: float = Field(..., gt=0, allow_inf_nan=False, description="Beats per minute")
    energy: int = Field(..., ge=1, le=10, description="Energy level 1-10")

    def with_field(self, field: str, raw_value: str) -> "Track":
        """
        Return a copy with one editable field replaced.

        Numeric fields are parsed from the raw text; text fields keep it as-is.
        Raises EditValidationError when the value can't be parsed or falls
        outside the field's bounds.
        """
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Field is not editable: {field}")

        value: object = raw_value
        if field in NUMERIC_FIELDS:
            value = _parse_number(field, raw_value)

        data = self.model_dump()
        data[field] = value
        try:
            return Track.model_validate(data)
        except ValueError as e:
            raise EditValidationError(field, raw_value) from e

    def label(self) -> str:
        return f"{self.artist} - {self.title}"


def _parse_number(field: str, raw_value: str) -> float:
    try:
        number = float(str(raw_value).strip())
    except ValueError as e:
        raise EditValidationError(field, raw_value) from e
    if not math.isfinite(number):
        raise EditValidationError(field, raw_value)
    if field == "energy":
        if not number.is_integer():
            raise EditValidationError(field, raw_value)
        return int(number)
    return number


# ---------------------------------------------------------------------------
# Compatibility + suggestions
# ---------------------------------------------------------------------------

class TransitionAssessment(BaseModel):
    """How well one track mixes into another, per the Camelot/tempo/energy rules."""

    key_relation: str = Field("unknown", description="same, adjacent_up, inner_outer, energy_boost, incompatible, ...")
    key_score: float = Field(0.0, description="Graded Camelot score 0-1")
    key_compatible: bool = False
    bpm_diff_pct: float = Field(0.0, description="BPM difference as % of the lower tempo")
    bpm_compatible: bool = False
    energy_delta: int = 0
    energy_flow: Literal["smooth", "abrupt"] = "smooth"
    notes: List[str] = Field(default_factory=list)

    @property
    def is_compatible(self) -> bool:
        return self.key_compatible and self.bpm_compatible and self.energy_flow == "smooth"


class Suggestion(BaseModel):
    """A recommended next track, referenced by (title, artist) rather than id."""

    title: str
    artist: str
    reason: str = ""
    compatibility: Optional[TransitionAssessment] = Field(
        None, description="Rule-based annotation, set when the suggestion resolves to a library track"
    )

    def matches(self, track: Track) -> bool:
        return track.title == self.title and track.artist == self.artist


# ---------------------------------------------------------------------------
# Library view
# ---------------------------------------------------------------------------

class NumericRange(BaseModel):
    """Inclusive range; a missing bound is open on that side."""

    min: Optional[float] = None
    max: Optional[float] = None

    @field_validator("min", "max", mode="before")
    @classmethod
    def _blank_is_open(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def contains(self, value: float) -> bool:
        low = self.min if self.min is not None else 0.0
        high = self.max if self.max is not None else math.inf
        return low <= value <= high


class FilterCriteria(BaseModel):
    """Conjunctive library filter."""

    key: str = Field("", description="Case-insensitive substring of the Camelot key")
    bpm: NumericRange = Field(default_factory=NumericRange)
    energy: NumericRange = Field(default_factory=NumericRange)

    def matches(self, track: Track) -> bool:
        return (
            self.key.lower() in track.key.lower()
            and self.bpm.contains(track.bpm)
            and self.energy.contains(track.energy)
        )


class SortSpec(BaseModel):
    """The single active sort column."""

    model_config = ConfigDict(frozen=True)

    field: SortField = "artist"
    direction: SortDirection = "ascending"

    def toggled(self, field: SortField) -> "SortSpec":
        """Sorting the same column again flips it; a new column starts ascending."""
        if field == self.field and self.direction == "ascending":
            return SortSpec(field=field, direction="descending")
        return SortSpec(field=field, direction="ascending")


class EditTarget(BaseModel):
    """The single cell under edit."""

    model_config = ConfigDict(frozen=True)

    track_id: str
    field: EditableField


# ---------------------------------------------------------------------------
# Results reported to the presentation layer
# ---------------------------------------------------------------------------

class ImportReport(BaseModel):
    """Outcome of one add-files batch."""

    added: List[Track] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list, description="Ids already in the library or repeated in the batch")
    failed: Dict[str, str] = Field(default_factory=dict, description="filename -> error message")


class SessionSnapshot(BaseModel):
    """Everything a UI needs to render the current state."""

    tracks: List[Track] = Field(default_factory=list, description="Filtered + sorted library view")
    library_size: int = 0
    selected: Optional[Track] = None
    suggestions: List[Suggestion] = Field(default_factory=list)
    setlist: List[Track] = Field(default_factory=list)
    filter: FilterCriteria = Field(default_factory=FilterCriteria)
    sort: SortSpec = Field(default_factory=SortSpec)
    editing: Optional[EditTarget] = None
    is_analyzing: bool = False
    is_suggesting: bool = False
    error: Optional[str] = None
