"""
Claude API Integration for Track Analysis and Recommendations

Uses the Anthropic SDK with forced tool-calling so Claude answers with
structured JSON that is then validated at the collaborator boundary.
"""

import json
import re
from typing import Any, Dict, List, Optional

import anthropic
from loguru import logger

from .collaborators import SUGGESTION_LIMIT, parse_analysis, parse_suggestions
from .config import Settings
from .errors import AnalysisError, RecommendationError
from .models import AnalyzedTrack, Suggestion, Track


# ---------------------------------------------------------------------------
# Tool definitions for Claude
# ---------------------------------------------------------------------------

ANALYSIS_TOOL = {
    "name": "report_track_analysis",
    "description": "Report the inferred metadata and mixing attributes for one audio file.",
    "input_schema": {
        "type": "object",
        "properties": {
            "artist": {"type": "string", "description": "Track artist, or 'Unknown Artist'"},
            "title": {"type": "string", "description": "Track title, or the filename if unknown"},
            "key": {"type": "string", "description": "Camelot key, e.g. '8A' or '10B'"},
            "bpm": {"type": "number", "description": "Tempo in beats per minute"},
            "energy": {"type": "integer", "minimum": 1, "maximum": 10, "description": "Energy level 1-10"},
        },
        "required": ["artist", "title", "key", "bpm", "energy"],
    },
}

SUGGESTION_TOOL = {
    "name": "suggest_next_tracks",
    "description": "Report the best tracks to mix in next, best first.",
    "input_schema": {
        "type": "object",
        "properties": {
            "suggestions": {
                "type": "array",
                "maxItems": SUGGESTION_LIMIT,
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string"},
                        "artist": {"type": "string"},
                        "reason": {"type": "string", "description": "Brief mixing rationale"},
                    },
                    "required": ["title", "artist", "reason"],
                },
            },
        },
        "required": ["suggestions"],
    },
}


def _describe(track: Track) -> str:
    return f'"{track.title}" by {track.artist} (Key: {track.key}, BPM: {track.bpm:g}, Energy: {track.energy})'


def _analysis_prompt(filename: str) -> str:
    return f"""Act as an expert DJ music analysis tool like Mixed In Key. From the filename "{filename}", infer the artist and title.
Then provide the most likely musical key in Camelot notation (e.g. 8A, 10B), the BPM, and an energy level from 1 to 10.

If you cannot infer artist/title, use the filename as the title and "Unknown Artist" as the artist.
Report the result with the report_track_analysis tool."""


def _recommendation_prompt(current: Track, candidates: List[Track], limit: int) -> str:
    library = "\n".join(f"- {_describe(t)}" for t in candidates)
    return f"""You are a world-class DJ specializing in harmonic mixing using the Camelot wheel.
I am building a DJ set. The current track playing is:
- {_describe(current)}

From the following list of available tracks, recommend the top {limit} best tracks to mix in next.
Prioritize harmonic compatibility (mixing in key). Good transitions are:
1. The exact same key (e.g. 8A -> 8A).
2. Up or down one number (e.g. 8A -> 7A or 8A -> 9A).
3. Switching between A and B at the same number (e.g. 8A -> 8B).

Also consider BPM compatibility (a difference of +/- 5% is good) and energy flow
(moving up or down by 1-2 levels is ideal, avoid large jumps unless it's for a big impact).

Available Tracks:
{library}

Use the exact title and artist as listed. Report your picks with the suggest_next_tracks tool."""


def _extract_json(text: str) -> Any:
    """Parse JSON from a text reply, tolerating a ```json fence."""
    text = text.strip()
    text = re.sub(r"^```(?:json)?\s*\n?", "", text)
    text = re.sub(r"\n?```\s*$", "", text)
    return json.loads(text.strip())


class _ClaudeCollaborator:
    """Shared Anthropic client handling."""

    def __init__(self, settings: Optional[Settings] = None, client=None) -> None:
        self.settings = settings or Settings.from_env()
        self._client = client

    def _get_client(self):
        """Lazy-init the async Anthropic client."""
        if self._client is None:
            if not self.settings.anthropic_api_key:
                return None
            self._client = anthropic.AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        return self._client

    async def _call_tool(self, prompt: str, tool: Dict[str, Any]) -> Any:
        """Ask Claude to answer through ``tool`` and return the tool input."""
        client = self._get_client()
        if client is None:
            raise RuntimeError("ANTHROPIC_API_KEY is not set")

        response = await client.messages.create(
            model=self.settings.model,
            max_tokens=self.settings.max_tokens,
            tools=[tool],
            tool_choice={"type": "tool", "name": tool["name"]},
            messages=[{"role": "user", "content": prompt}],
        )

        text_parts = []
        for block in response.content:
            if block.type == "tool_use" and block.name == tool["name"]:
                return block.input
            if block.type == "text":
                text_parts.append(block.text)

        # No tool call: fall back to a JSON answer in plain text
        return _extract_json("".join(text_parts))


class ClaudeAnalyzer(_ClaudeCollaborator):
    """Infers key, BPM and energy for a file from its name."""

    async def analyze(self, filename: str) -> AnalyzedTrack:
        logger.info(f"Analyzing {filename}")
        try:
            payload = await self._call_tool(_analysis_prompt(filename), ANALYSIS_TOOL)
        except (anthropic.APIError, RuntimeError, ValueError) as e:
            logger.error(f"Claude analysis failed for {filename}: {e}")
            raise AnalysisError(f"Could not analyze '{filename}': {e}", filename=filename) from e
        return parse_analysis(payload, filename=filename)


class ClaudeRecommender(_ClaudeCollaborator):
    """Asks Claude for the best next tracks from the rest of the library."""

    async def recommend(self, current: Track, candidates: List[Track]) -> List[Suggestion]:
        limit = self.settings.suggestion_limit
        logger.info(f"Requesting {limit} suggestions after {current.label()} from {len(candidates)} candidates")
        try:
            payload = await self._call_tool(
                _recommendation_prompt(current, candidates, limit), SUGGESTION_TOOL
            )
        except (anthropic.APIError, RuntimeError, ValueError) as e:
            logger.error(f"Claude recommendation failed: {e}")
            raise RecommendationError(f"Could not get suggestions: {e}") from e
        return parse_suggestions(payload, limit=limit)
