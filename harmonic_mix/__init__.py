"""Harmonic Mix: track library, harmonic-mixing rules and next-track suggestions for DJ sets."""

__version__ = "0.1.0"
