"""
CSV export of a track sequence.

Rows are written in exactly the order given (the library view or the
set-list); the csv module quotes any cell containing a comma, double quote
or newline and doubles inner quotes.
"""

import csv
import io
from typing import Iterable, List

from .models import Track

HEADER = ["Filename", "Title", "Artist", "Key", "BPM", "Energy"]

EXPORT_FILENAME = "harmonic-mix-setlist.csv"


def _format_number(value: float) -> str:
    # 124.0 -> "124", 124.5 -> "124.5"
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def track_row(track: Track) -> List[str]:
    return [
        track.id,
        track.title,
        track.artist,
        track.key,
        _format_number(track.bpm),
        str(track.energy),
    ]


def serialize(tracks: Iterable[Track]) -> str:
    """Header row plus one row per track, newline-terminated."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(HEADER)
    for track in tracks:
        writer.writerow(track_row(track))
    return buffer.getvalue()
