"""
Camelot Wheel Harmonic Mixing Rules

Implements the Camelot wheel for scoring harmonic compatibility between tracks,
plus the tempo and energy-flow rules DJs use alongside it.
The wheel has 12 positions (1-12) and 2 rings: A (minor) and B (major).

Graded key transitions:
  same key        (8A -> 8A)   = 1.0
  adjacent +1     (8A -> 9A)   = 0.9
  adjacent -1     (8A -> 7A)   = 0.9
  ring switch     (8A -> 8B)   = 0.85
  energy boost +7 (8A -> 3A)   = 0.7
  diagonal +1     (8A -> 9B)   = 0.6
  diagonal -1     (8A -> 7B)   = 0.6
  incompatible                  = 0.1

Only same key, adjacent and ring switch count as *compatible*; the rest are
scored but flagged. These rules annotate suggestions, they never filter them.
"""

import re
from typing import Optional, Tuple

from .models import Track, TransitionAssessment


# Valid Camelot key pattern: 1-12 followed by A or B
_KEY_PATTERN = re.compile(r"^(\d{1,2})([ABab])$")

# Relations that count as a harmonic match
COMPATIBLE_RELATIONS = frozenset({"same", "adjacent_up", "adjacent_down", "inner_outer"})

BPM_TOLERANCE_PCT = 5.0
SMOOTH_ENERGY_DELTA = 2


class CamelotWheel:
    """Implements Camelot wheel logic for harmonic DJ mixing."""

    @staticmethod
    def parse_key(key: str) -> Optional[Tuple[int, str]]:
        """
        Parse a Camelot key string into (number, letter).
        '8A' -> (8, 'A'), '12B' -> (12, 'B')
        Returns None for invalid keys.
        """
        if not key:
            return None
        match = _KEY_PATTERN.match(key.strip())
        if not match:
            return None
        num = int(match.group(1))
        letter = match.group(2).upper()
        if not (1 <= num <= 12):
            return None
        return (num, letter)

    @staticmethod
    def _wrap(num: int) -> int:
        """Wrap position to 1-12 range."""
        return ((num - 1) % 12) + 1

    def transition_score(self, from_key: str, to_key: str) -> Tuple[float, str]:
        """
        Score a key transition.
        Returns (score, relationship_name).
        """
        from_parsed = self.parse_key(from_key)
        to_parsed = self.parse_key(to_key)

        if not from_parsed or not to_parsed:
            return (0.0, "unknown")

        f_num, f_letter = from_parsed
        t_num, t_letter = to_parsed

        if f_num == t_num and f_letter == t_letter:
            return (1.0, "same")

        # Same ring
        if f_letter == t_letter:
            if t_num == self._wrap(f_num + 1):
                return (0.9, "adjacent_up")
            if t_num == self._wrap(f_num - 1):
                return (0.9, "adjacent_down")
            if t_num == self._wrap(f_num + 7):
                return (0.7, "energy_boost")

        if f_num == t_num and f_letter != t_letter:
            return (0.85, "inner_outer")

        # Diagonal (adjacent + ring switch)
        if f_letter != t_letter:
            if t_num == self._wrap(f_num + 1):
                return (0.6, "diagonal_up")
            if t_num == self._wrap(f_num - 1):
                return (0.6, "diagonal_down")

        return (0.1, "incompatible")

    def keys_compatible(self, from_key: str, to_key: str) -> bool:
        """Exact match, ring switch, or one step around the wheel on the same ring."""
        _, rel = self.transition_score(from_key, to_key)
        return rel in COMPATIBLE_RELATIONS

    @staticmethod
    def bpm_diff_pct(bpm_a: float, bpm_b: float) -> float:
        """Tempo difference as a percentage of the lower tempo."""
        low = min(bpm_a, bpm_b)
        if low <= 0:
            return float("inf")
        return abs(bpm_a - bpm_b) * 100 / low

    def bpm_compatible(self, bpm_a: float, bpm_b: float) -> bool:
        return self.bpm_diff_pct(bpm_a, bpm_b) <= BPM_TOLERANCE_PCT

    @staticmethod
    def energy_flow(from_energy: int, to_energy: int) -> str:
        """'smooth' for a change of at most 2 levels, 'abrupt' otherwise."""
        if abs(to_energy - from_energy) <= SMOOTH_ENERGY_DELTA:
            return "smooth"
        return "abrupt"

    def assess(self, current: Track, candidate: Track) -> TransitionAssessment:
        """Rate mixing from ``current`` into ``candidate``."""
        score, rel = self.transition_score(current.key, candidate.key)
        bpm_pct = self.bpm_diff_pct(current.bpm, candidate.bpm)
        energy_delta = candidate.energy - current.energy

        return TransitionAssessment(
            key_relation=rel,
            key_score=score,
            key_compatible=rel in COMPATIBLE_RELATIONS,
            bpm_diff_pct=round(bpm_pct, 2),
            bpm_compatible=bpm_pct <= BPM_TOLERANCE_PCT,
            energy_delta=energy_delta,
            energy_flow=self.energy_flow(current.energy, candidate.energy),
            notes=_mix_notes(rel, bpm_pct, energy_delta),
        )


def _mix_notes(rel: str, bpm_pct_diff: float, energy_delta: int) -> list:
    notes = []

    if rel == "unknown":
        notes.append("Key not in Camelot notation, can't judge the harmonic match")
    elif rel == "incompatible":
        notes.append("Keys clash, consider key-shifting with DJ software")
    elif rel in ("adjacent_up", "adjacent_down"):
        notes.append("Smooth harmonic transition, can mix long overlaps")
    elif rel == "energy_boost":
        notes.append("Energy boost transition, powerful but outside the safe keys")
    elif rel in ("diagonal_up", "diagonal_down"):
        notes.append("Diagonal key move, keep the overlap short")
    elif rel == "inner_outer":
        notes.append("Major/minor switch, works well for emotional shifts")

    if bpm_pct_diff > BPM_TOLERANCE_PCT:
        notes.append(f"Large BPM gap ({bpm_pct_diff:.1f}%), consider a quick cut")

    if abs(energy_delta) > SMOOTH_ENERGY_DELTA:
        notes.append(f"Abrupt energy jump ({energy_delta:+d})")

    return notes
