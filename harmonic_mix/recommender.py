"""
Rule-based Next-Track Recommender

Local stand-in for the AI recommender when no API key is configured.
Scores candidates on the Camelot wheel, BPM proximity and energy flow and
returns the best few as suggestions with a human-readable reason.
"""

from typing import List, Optional, Tuple

from loguru import logger

from .camelot import CamelotWheel
from .collaborators import SUGGESTION_LIMIT
from .models import Suggestion, Track


class HarmonicRecommender:
    """Implements the Recommender protocol without any external service."""

    def __init__(self, camelot: Optional[CamelotWheel] = None, limit: int = SUGGESTION_LIMIT) -> None:
        self.camelot = camelot or CamelotWheel()
        self.limit = limit

    async def recommend(self, current: Track, candidates: List[Track]) -> List[Suggestion]:
        return self.rank(current, candidates)

    def rank(self, current: Track, candidates: List[Track]) -> List[Suggestion]:
        """Score every candidate and keep the top ``limit``, best first."""
        scored: List[Tuple[float, Track, float, str]] = []
        for candidate in candidates:
            if candidate.id == current.id:
                continue
            h_score, rel = self.camelot.transition_score(current.key, candidate.key)
            bpm_score = self._bpm_score(current.bpm, candidate.bpm)
            energy_score = self._energy_score(current.energy, candidate.energy)

            total = 0.5 * h_score + 0.3 * bpm_score + 0.2 * energy_score
            scored.append((total, candidate, bpm_score, rel))

        # sort() is stable, so equal scores keep library order
        scored.sort(key=lambda x: x[0], reverse=True)
        logger.debug(f"Ranked {len(scored)} candidates after {current.label()}")

        return [
            Suggestion(
                title=track.title,
                artist=track.artist,
                reason=self._build_reason(current, track, rel, bpm_score),
            )
            for _, track, bpm_score, rel in scored[: self.limit]
        ]

    # ------------------------------------------------------------------
    # Scoring helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _bpm_score(current_bpm: float, candidate_bpm: float) -> float:
        """Score BPM proximity. 1.0 if identical, 0.0 if >10% away."""
        low = min(current_bpm, candidate_bpm)
        if low <= 0:
            return 0.5
        pct_diff = abs(candidate_bpm - current_bpm) / low * 100
        return max(0.0, 1.0 - (pct_diff / 10.0))

    @staticmethod
    def _energy_score(current_energy: int, candidate_energy: int) -> float:
        """A step of 1-2 levels is ideal; staying level is fine; big jumps score low."""
        delta = abs(candidate_energy - current_energy)
        if delta == 0:
            return 0.9
        if delta <= 2:
            return 1.0
        return max(0.0, 1.0 - (delta - 2) / 5.0)

    def _build_reason(self, current: Track, candidate: Track, rel: str, bpm_score: float) -> str:
        parts = []

        rel_desc = {
            "same": "Same key",
            "adjacent_up": "Key +1 on the wheel",
            "adjacent_down": "Key -1 on the wheel",
            "inner_outer": "Major/minor switch",
            "energy_boost": "Energy boost (+7)",
            "diagonal_up": "Diagonal +1",
            "diagonal_down": "Diagonal -1",
            "incompatible": "Key clash, mix carefully",
        }
        if rel in rel_desc:
            parts.append(rel_desc[rel])

        if bpm_score >= 0.8:
            parts.append("Very close BPM")
        elif self.camelot.bpm_compatible(current.bpm, candidate.bpm):
            parts.append("Compatible BPM")

        delta = candidate.energy - current.energy
        if delta > 0:
            parts.append(f"Lifts energy to {candidate.energy}")
        elif delta < 0:
            parts.append(f"Drops energy to {candidate.energy}")
        else:
            parts.append("Keeps the energy level")

        return ". ".join(parts)
