"""
FastMCP Server for Claude Desktop Integration

Exposes the Harmonic Mix session as MCP tools: import files, browse the
library, pick a track, get "what to mix in next" suggestions, build a
set-list and export it as CSV.

To connect to Claude Desktop (stdio), add to claude_desktop_config.json:
{
  "mcpServers": {
    "harmonic-mix": {
      "command": "harmonic-mix-mcp",
      "env": {"ANTHROPIC_API_KEY": "..."}
    }
  }
}

To run over HTTP (SSE):
  harmonic-mix-mcp --transport sse [--host 127.0.0.1] [--port 8000]
"""

from typing import Any, Dict, List, Optional

from fastmcp import FastMCP
from loguru import logger

from .config import Settings
from .demo import DEMO_TRACKS
from .models import EDITABLE_FIELDS, SORT_FIELDS, FilterCriteria, NumericRange, SortSpec, Track
from .session import MixSession

# ---------------------------------------------------------------------------
# Global state
# ---------------------------------------------------------------------------

mcp = FastMCP("Harmonic Mix")

session: Optional[MixSession] = None


def _ensure_session() -> MixSession:
    """Lazy-initialize the session on first tool call."""
    global session
    if session is None:
        logger.info("Initializing Harmonic Mix MCP session...")
        session = MixSession.from_settings(Settings.from_env())
    return session


def _find_track(s: MixSession, title_or_id: str) -> Optional[Track]:
    track = s.store.get(title_or_id)
    if track:
        return track
    query = title_or_id.strip().lower()
    return next(
        (t for t in s.store if query in t.title.lower() or query in t.label().lower()),
        None,
    )


def _track_dict(track: Track) -> Dict[str, Any]:
    return track.model_dump(mode="json")


def _query_library(
    s: MixSession,
    key: str = "",
    bpm_min: Optional[float] = None,
    bpm_max: Optional[float] = None,
    energy_min: Optional[int] = None,
    energy_max: Optional[int] = None,
    sort_by: str = "artist",
    descending: bool = False,
) -> List[Track]:
    """One-off library query; the session's own filter and sort are left alone."""
    criteria = FilterCriteria(
        key=key,
        bpm=NumericRange(min=bpm_min, max=bpm_max),
        energy=NumericRange(min=energy_min, max=energy_max),
    )
    if sort_by not in SORT_FIELDS:
        sort_by = "artist"
    sort = SortSpec(field=sort_by, direction="descending" if descending else "ascending")
    return s.store.view(criteria, sort)


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------

@mcp.tool()
async def add_files(filenames: List[str]) -> Dict[str, Any]:
    """
    Analyze audio files by name and add them to the library.

    Args:
        filenames: File names or paths. Files already in the library are skipped.

    Returns:
        Tracks added, skipped ids, per-file failures and any advisory error.
    """
    s = _ensure_session()
    report = await s.add_files(filenames)
    result = report.model_dump(mode="json")
    result["error"] = s.orchestrator.error
    return result


@mcp.tool()
async def load_demo_library() -> Dict[str, Any]:
    """Load six demo tracks so the other tools can be tried without analysis."""
    s = _ensure_session()
    added = s.seed(DEMO_TRACKS)
    return {"added": len(added), "library_size": len(s.store)}


@mcp.tool()
async def list_tracks(
    key: str = "",
    bpm_min: Optional[float] = None,
    bpm_max: Optional[float] = None,
    energy_min: Optional[int] = None,
    energy_max: Optional[int] = None,
    sort_by: str = "artist",
    descending: bool = False,
) -> List[Dict[str, Any]]:
    """
    List library tracks, filtered and sorted.

    Args:
        key: Case-insensitive substring of the Camelot key (e.g. '8', '8a')
        bpm_min / bpm_max: Inclusive BPM bounds. Optional.
        energy_min / energy_max: Inclusive energy bounds (1-10). Optional.
        sort_by: title, artist, key, bpm or energy
        descending: Sort high to low
    """
    s = _ensure_session()
    tracks = _query_library(s, key, bpm_min, bpm_max, energy_min, energy_max, sort_by, descending)
    return [_track_dict(t) for t in tracks]


@mcp.tool()
async def recommend_next_track(current_track: str) -> Dict[str, Any]:
    """
    Select a track and get up to three suggestions for what to mix in next.

    Each suggestion carries the recommender's reason plus a Camelot / BPM /
    energy-flow assessment when it matches a library track.

    Args:
        current_track: Track id, title, or "Artist - Title"
    """
    s = _ensure_session()
    track = _find_track(s, current_track)
    if track is None:
        return {"error": f"Track '{current_track}' not found in library"}

    if s.select(track) is None:
        return {"error": "Another track is being edited; finish that edit first"}
    suggestions = await s.wait_for_suggestions()

    return {
        "current": _track_dict(track),
        "suggestions": [sg.model_dump(mode="json") for sg in suggestions],
        "error": s.orchestrator.error,
    }


@mcp.tool()
async def edit_track(track: str, field: str, value: str) -> Dict[str, Any]:
    """
    Correct one field of a track (title, artist, key, bpm or energy).

    Non-numeric BPM/energy values are ignored and the old value kept.
    """
    s = _ensure_session()
    found = _find_track(s, track)
    if found is None:
        return {"error": f"Track '{track}' not found in library"}
    if field not in EDITABLE_FIELDS:
        return {"error": f"Field '{field}' is not editable"}

    s.cancel_edit()
    s.start_edit(found.id, field)
    updated = s.commit_edit(value)
    if updated is None:
        return {"updated": False, "track": _track_dict(found)}
    if s.orchestrator.selected and s.orchestrator.selected.id == updated.id:
        await s.wait_for_suggestions()
    return {"updated": True, "track": _track_dict(updated)}


@mcp.tool()
async def add_to_setlist(track: str) -> Dict[str, Any]:
    """Append a track to the set-list (no-op if it is already there)."""
    s = _ensure_session()
    found = _find_track(s, track)
    if found is None:
        return {"error": f"Track '{track}' not found in library"}
    added = s.add_to_setlist(found)
    return {"added": added, "setlist": [_track_dict(t) for t in s.setlist_tracks()]}


@mcp.tool()
async def remove_from_setlist(track_id: str) -> Dict[str, Any]:
    """Remove a track from the set-list by id."""
    s = _ensure_session()
    removed = s.remove_from_setlist(track_id)
    return {"removed": removed, "setlist": [_track_dict(t) for t in s.setlist_tracks()]}


@mcp.tool()
async def export_csv(view: str = "setlist") -> str:
    """
    Export as CSV text.

    Args:
        view: "setlist" for the set-list order, "library" for the current library view
    """
    s = _ensure_session()
    return s.export("library" if view == "library" else "setlist")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Run the MCP server."""
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("--transport", default="stdio", choices=["stdio", "sse"])
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    logger.info("Starting Harmonic Mix MCP Server...")

    if args.transport == "sse":
        mcp.run(transport="sse", host=args.host, port=args.port)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
