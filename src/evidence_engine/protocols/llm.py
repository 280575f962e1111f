"""Protocol for streaming generation providers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol


class GenerationService(Protocol):
    def generate_stream(
        self,
        prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.2,
    ) -> AsyncIterator[str]:
        """Yield text fragments. Raises ThrottlingError when rate limited."""
        ...
