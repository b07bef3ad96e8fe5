"""
Analyzer / Recommender contracts

The core only talks to its inference collaborators through these protocols.
Raw payloads are validated here so nothing partially-typed gets further in:
schema violations become AnalysisError / RecommendationError.
"""

from typing import Any, List, Protocol

from loguru import logger
from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import AnalysisError, RecommendationError
from .models import AnalyzedTrack, Suggestion, Track

SUGGESTION_LIMIT = 3


class Analyzer(Protocol):
    async def analyze(self, filename: str) -> AnalyzedTrack:
        """Infer title, artist, key, BPM and energy for one file. Raises AnalysisError."""
        ...


class Recommender(Protocol):
    async def recommend(self, current: Track, candidates: List[Track]) -> List[Suggestion]:
        """Rank up to three candidates to mix in after ``current``. Raises RecommendationError."""
        ...


class _SuggestionPayload(BaseModel):
    title: str
    artist: str
    reason: str


_suggestion_list = TypeAdapter(List[_SuggestionPayload])


def parse_analysis(payload: Any, filename: str = "") -> AnalyzedTrack:
    """Validate an analyzer payload (a dict with artist, title, key, bpm, energy)."""
    if isinstance(payload, AnalyzedTrack):
        return payload
    try:
        return AnalyzedTrack.model_validate(payload)
    except ValidationError as e:
        raise AnalysisError(
            f"Invalid analysis for '{filename}': {e.error_count()} field error(s)",
            filename=filename,
        ) from e


def parse_suggestions(payload: Any, limit: int = SUGGESTION_LIMIT) -> List[Suggestion]:
    """Validate a recommender payload: a list of {title, artist, reason} objects."""
    if isinstance(payload, dict) and "suggestions" in payload:
        payload = payload["suggestions"]
    if isinstance(payload, list):
        payload = [p.model_dump() if isinstance(p, BaseModel) else p for p in payload]
    try:
        items = _suggestion_list.validate_python(payload)
    except ValidationError as e:
        raise RecommendationError(
            f"Invalid recommendation payload: {e.error_count()} error(s)"
        ) from e

    if len(items) > limit:
        logger.warning(f"Recommender returned {len(items)} suggestions, keeping the top {limit}")
    return [Suggestion(**item.model_dump()) for item in items[:limit]]
