"""Stream a document from the generation service, backing off on throttling."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from evidence_engine.config.settings import Settings
from evidence_engine.exceptions import ThrottlingError
from evidence_engine.observability.logger import get_logger
from evidence_engine.protocols.llm import GenerationService

logger = get_logger("document_generator")

# Called with the number of consecutive throttles seen in the current request.
ThrottleListener = Callable[[int], Awaitable[None]]


class DocumentGenerator:
    def __init__(
        self,
        llm: GenerationService,
        settings: Settings,
        throttle_listener: ThrottleListener | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self._llm = llm
        self._settings = settings
        self._temperature = (
            settings.generation_temperature if temperature is None else temperature
        )
        self._max_tokens = settings.generation_max_tokens if max_tokens is None else max_tokens
        self._listener = throttle_listener
        self._sleep = sleep

    async def generate(self, prompt: str) -> str:
        """Return the full accumulated text of one successful stream.

        A throttled attempt is discarded and restarted after an exponential
        backoff. Any other failure propagates immediately.
        """
        s = self._settings
        streak = 0
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ThrottlingError),
            stop=stop_after_attempt(s.generation_retry_attempts + 1),
            wait=wait_exponential(
                multiplier=s.generation_retry_base_seconds,
                max=s.generation_retry_max_seconds,
            ),
            sleep=self._sleep,
            reraise=True,
        )

        text = ""
        async for attempt in retrying:
            with attempt:
                try:
                    text = await self._accumulate(prompt)
                except ThrottlingError:
                    streak += 1
                    logger.warning(
                        "generation_throttled",
                        attempt=attempt.retry_state.attempt_number,
                        consecutive_throttles=streak,
                    )
                    if self._listener is not None:
                        await self._listener(streak)
                    raise

        logger.info("generation_complete", output_chars=len(text), throttles=streak)
        return text

    async def _accumulate(self, prompt: str) -> str:
        parts: list[str] = []
        async for fragment in self._llm.generate_stream(
            prompt,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        ):
            parts.append(fragment)
        return "".join(parts)
