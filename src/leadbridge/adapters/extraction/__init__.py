from __future__ import annotations

from .client import OpenAITextExtractor

__all__ = ["OpenAITextExtractor"]
