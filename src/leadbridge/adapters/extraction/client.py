"""OpenAI chat-completions backed text extractor."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, cast

from openai import AsyncOpenAI, OpenAIError

from leadbridge.domain.errors import ExtractionError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from leadbridge.config.extraction import ExtractionConfig
    from leadbridge.domain.extraction import ExtractionSchema

log = getLogger(__name__)


class OpenAITextExtractor:
    """Ask the model for a JSON object matching an extraction schema."""

    def __init__(self, config: ExtractionConfig, *, client: AsyncOpenAI | None = None) -> None:
        self._config = config
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._config.api_key,
                timeout=self._config.timeout_seconds,
            )
        return self._client

    async def extract(self, schema: ExtractionSchema, text: str) -> Mapping[str, object]:
        excerpt = text[: self._config.max_input_chars]
        try:
            response = await self.client.chat.completions.create(
                model=self._config.model,
                messages=[
                    {"role": "system", "content": schema.instructions},
                    {"role": "user", "content": f"{schema.prompt_prefix}{excerpt}"},
                ],
                temperature=0.3,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            log.warning("%s extraction failed: %s", schema.name, exc)
            raise ExtractionError(f"{schema.name} extraction failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExtractionError(f"{schema.name} extraction returned no content")
        try:
            decoded = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ExtractionError(f"{schema.name} extraction returned invalid JSON") from exc
        if not isinstance(decoded, dict):
            raise ExtractionError(f"{schema.name} extraction returned {type(decoded).__name__}")
        return cast(dict[str, object], decoded)
