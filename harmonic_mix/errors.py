"""
Error taxonomy for Harmonic Mix.

Collaborator errors (analysis, recommendation) are caught at the orchestrator
and turned into a single advisory message. Edit errors are local and recoverable:
they never reach the user. Adding a track whose id is already in the library
is a plain no-op (TrackStore.add returns False), not an error.
"""


class HarmonicMixError(Exception):
    """Base class for all Harmonic Mix errors."""


class AnalysisError(HarmonicMixError):
    """The analyzer failed or returned a payload that violates its contract."""

    def __init__(self, message: str, filename: str = "") -> None:
        super().__init__(message)
        self.filename = filename


class RecommendationError(HarmonicMixError):
    """The recommender failed, timed out, or returned a malformed payload."""


class EditValidationError(HarmonicMixError, ValueError):
    """An edited value could not be parsed or validated for its field."""

    def __init__(self, field: str, raw_value: str) -> None:
        super().__init__(f"Invalid value for {field}: {raw_value!r}")
        self.field = field
        self.raw_value = raw_value

