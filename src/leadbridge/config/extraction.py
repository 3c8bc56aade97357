"""Text-extraction (LLM) collaborator configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, optional_float_env_var, require_env_vars

DEFAULT_EXTRACTION_MODEL = "gpt-4o-mini"
DEFAULT_EXTRACTION_TIMEOUT_SECONDS = 60.0
MAX_EXTRACTION_INPUT_CHARS = 8000


@dataclass(frozen=True, slots=True)
class ExtractionConfig:
    api_key: str
    model: str = DEFAULT_EXTRACTION_MODEL
    timeout_seconds: float = DEFAULT_EXTRACTION_TIMEOUT_SECONDS
    max_input_chars: int = MAX_EXTRACTION_INPUT_CHARS


def get_extraction_config() -> ExtractionConfig:
    values = require_env_vars(("OPENAI_API_KEY",))
    return ExtractionConfig(
        api_key=values["OPENAI_API_KEY"],
        model=optional_env_var("OPENAI_MODEL", DEFAULT_EXTRACTION_MODEL),
        timeout_seconds=optional_float_env_var(
            "OPENAI_TIMEOUT", DEFAULT_EXTRACTION_TIMEOUT_SECONDS
        ),
    )
