"""
Runtime configuration, read from environment variables.

  ANTHROPIC_API_KEY          Claude API key (analysis + AI recommendations)
  HARMONIC_MIX_MODEL         Claude model id
  HARMONIC_MIX_MAX_TOKENS    Response token cap per collaborator call
  HARMONIC_MIX_SUGGESTIONS   Suggestions kept per recommendation (1-10)
  HARMONIC_MIX_HOST / _PORT  Bind address for the web app
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class Settings(BaseModel):
    anthropic_api_key: str = Field("", repr=False)
    model: str = DEFAULT_MODEL
    max_tokens: int = Field(1024, ge=64, le=8192)
    suggestion_limit: int = Field(3, ge=1, le=10)
    host: str = "0.0.0.0"
    port: int = Field(8888, ge=1, le=65535)

    @property
    def ai_enabled(self) -> bool:
        return bool(self.anthropic_api_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the environment; unset variables keep their defaults."""
        env = os.environ if environ is None else environ
        names = {
            "anthropic_api_key": "ANTHROPIC_API_KEY",
            "model": "HARMONIC_MIX_MODEL",
            "max_tokens": "HARMONIC_MIX_MAX_TOKENS",
            "suggestion_limit": "HARMONIC_MIX_SUGGESTIONS",
            "host": "HARMONIC_MIX_HOST",
            "port": "HARMONIC_MIX_PORT",
        }
        values = {field: env[var] for field, var in names.items() if env.get(var)}
        return cls.model_validate(values)
