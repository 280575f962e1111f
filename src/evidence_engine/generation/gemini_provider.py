"""Google Gemini streaming provider using the google-genai SDK."""

from __future__ import annotations

from collections.abc import AsyncIterator

from google import genai
from google.genai import errors, types

from evidence_engine.exceptions import GenerationError, ThrottlingError
from evidence_engine.observability.logger import get_logger

logger = get_logger("gemini")


def _is_throttle(error: errors.APIError) -> bool:
    return error.code == 429 or (error.status or "").upper() == "RESOURCE_EXHAUSTED"


class GeminiProvider:
    def __init__(self, api_key: str, model: str = "gemini-2.0-flash") -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model

    async def generate_stream(
        self,
        prompt: str,
        max_tokens: int = 8192,
        temperature: float = 0.2,
    ) -> AsyncIterator[str]:
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
        )
        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=self._model,
                contents=prompt,
                config=config,
            )
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except errors.APIError as e:
            if _is_throttle(e):
                logger.warning("gemini_throttled", code=e.code, status=e.status)
                raise ThrottlingError(f"Gemini rate limited: {e.message}") from e
            raise GenerationError(f"Gemini generation failed: {e}") from e
        except Exception as e:
            raise GenerationError(f"Gemini generation failed: {e}") from e
