"""Admission control: per-caller single-flight plus a load-triggered FIFO queue.

In normal mode a submitted job runs immediately under the caller's lock. When
the generation service reports sustained throttling the controller switches to
queue mode: new jobs are appended to a FIFO queue, the caller gets a ticket
back, and one worker task drains the queue serially. Queue mode ends once the
queue is empty and no throttle has been seen for the cooldown period.
"""

from __future__ import annotations

import asyncio
import math
import time
import uuid
from collections import OrderedDict, deque
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from evidence_engine.config.settings import Settings
from evidence_engine.exceptions import CallerBusyError, QueueFullError, QueueTimeoutError
from evidence_engine.models.domain import CallerLock, QueueEntry, QueueTicket, TicketOutcome
from evidence_engine.observability.logger import get_logger

logger = get_logger("admission")

Job = Callable[[], Awaitable[Any]]


class AdmissionController:
    def __init__(
        self,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._sleep = sleep

        # Guards every field below.
        self._lock = asyncio.Lock()
        self._callers: dict[str, CallerLock] = {}
        self._queue: deque[QueueEntry] = deque()
        self._running: QueueEntry | None = None
        self._outcomes: OrderedDict[str, TicketOutcome] = OrderedDict()
        self._queue_mode = False
        self._activated_at: float | None = None
        self._last_throttle_at: float | None = None
        self._worker: asyncio.Task | None = None

    @property
    def queue_mode_active(self) -> bool:
        return self._queue_mode

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    # Single-flight

    @asynccontextmanager
    async def single_flight(self, caller_id: str) -> AsyncIterator[None]:
        held = await self._acquire(caller_id)
        try:
            yield
        finally:
            await self._release(caller_id, held)

    async def _acquire(self, caller_id: str) -> CallerLock:
        timeout = self._settings.caller_lock_timeout_seconds
        async with self._lock:
            now = self._clock()
            current = self._callers.get(caller_id)
            if current is not None and current.in_flight:
                held_for = now - (current.started_at or now)
                if held_for < timeout:
                    raise CallerBusyError(
                        "A generation request for this caller is already in progress",
                        retry_after_seconds=math.ceil(timeout - held_for),
                    )
                logger.warning(
                    "caller_lock_force_reset", caller_id=caller_id, held_seconds=round(held_for, 1)
                )
            held = CallerLock(in_flight=True, started_at=now)
            self._callers[caller_id] = held
            return held

    async def _release(self, caller_id: str, held: CallerLock) -> None:
        async with self._lock:
            # A forced reset may have handed the slot to a newer request.
            if self._callers.get(caller_id) is held:
                del self._callers[caller_id]

    def _is_in_flight(self, caller_id: str, now: float) -> bool:
        current = self._callers.get(caller_id)
        if current is None or not current.in_flight:
            return False
        return now - (current.started_at or now) < self._settings.caller_lock_timeout_seconds

    # Queue mode

    async def report_throttle(self, consecutive: int) -> None:
        """Record a throttling signal seen during one request's retry loop."""
        async with self._lock:
            now = self._clock()
            self._last_throttle_at = now
            if consecutive >= self._settings.throttle_escalation_threshold and not self._queue_mode:
                self._queue_mode = True
                self._activated_at = now
                logger.warning(
                    "queue_mode_activated",
                    consecutive_throttles=consecutive,
                    queue_length=len(self._queue),
                )

    def _throttled_recently(self, now: float) -> bool:
        return (
            self._last_throttle_at is not None
            and now - self._last_throttle_at < self._settings.queue_cooldown_seconds
        )

    def _maybe_exit_queue_mode(self, now: float) -> None:
        if not self._queue_mode or self._queue or self._running is not None:
            return
        if self._throttled_recently(now):
            return
        self._queue_mode = False
        logger.info(
            "queue_mode_deactivated",
            active_seconds=round(now - (self._activated_at or now), 1),
        )
        self._activated_at = None

    def _wait_estimate(self, position: int) -> int:
        return (position - 1) * self._settings.queue_wait_estimate_seconds

    async def submit(self, caller_id: str, job: Job) -> Any:
        """Run ``job`` now, or enqueue it and return a QueueTicket in queue mode."""
        async with self._lock:
            now = self._clock()
            self._maybe_exit_queue_mode(now)
            ticket = self._enqueue(caller_id, job, now) if self._queue_mode else None

        if ticket is not None:
            return ticket
        async with self.single_flight(caller_id):
            return await job()

    def _enqueue(self, caller_id: str, job: Job, now: float) -> QueueTicket:
        for position, entry in enumerate(self._queue, 1):
            if entry.caller_id == caller_id:
                raise CallerBusyError(
                    "A generation request for this caller is already queued",
                    retry_after_seconds=self._wait_estimate(position + 1),
                )
        if self._is_in_flight(caller_id, now) or (
            self._running is not None and self._running.caller_id == caller_id
        ):
            raise CallerBusyError(
                "A generation request for this caller is already in progress",
                retry_after_seconds=self._settings.queue_wait_estimate_seconds,
            )
        if len(self._queue) >= self._settings.queue_max_length:
            logger.warning("queue_full", queue_length=len(self._queue))
            raise QueueFullError(
                "The generation queue is full",
                retry_after_seconds=self._settings.queue_wait_estimate_seconds,
            )

        entry = QueueEntry(
            ticket_id=uuid.uuid4().hex,
            caller_id=caller_id,
            job=job,
            future=asyncio.get_running_loop().create_future(),
            enqueued_at=now,
        )
        self._queue.append(entry)
        self._record(TicketOutcome(entry.ticket_id, caller_id, "pending"))
        position = len(self._queue)
        logger.info(
            "request_queued",
            ticket_id=entry.ticket_id,
            caller_id=caller_id,
            position=position,
        )

        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

        return QueueTicket(
            ticket_id=entry.ticket_id,
            position=position,
            estimated_wait_seconds=self._wait_estimate(position),
            total_queue_length=position,
        )

    # Worker

    async def _drain(self) -> None:
        while True:
            async with self._lock:
                now = self._clock()
                self._expire(now)
                if not self._queue:
                    self._maybe_exit_queue_mode(now)
                    return
                entry = self._queue.popleft()
                self._running = entry

            await self._run(entry)

            async with self._lock:
                self._running = None
                if not self._queue:
                    continue
                throttled = self._throttled_recently(self._clock())
            s = self._settings
            await self._sleep(
                s.queue_throttled_delay_seconds if throttled else s.queue_item_delay_seconds
            )

    def _expire(self, now: float) -> None:
        max_residency = self._settings.queue_max_residency_seconds
        kept: deque[QueueEntry] = deque()
        for entry in self._queue:
            waited = now - entry.enqueued_at
            if waited <= max_residency:
                kept.append(entry)
                continue
            logger.warning(
                "queued_request_expired",
                ticket_id=entry.ticket_id,
                caller_id=entry.caller_id,
                waited_seconds=round(waited, 1),
            )
            self._finish(
                entry,
                TicketOutcome(
                    entry.ticket_id,
                    entry.caller_id,
                    "failed",
                    error=QueueTimeoutError(
                        f"Request waited {int(waited)}s in the queue and was abandoned"
                    ),
                ),
            )
        self._queue = kept

    async def _run(self, entry: QueueEntry) -> None:
        started = self._clock()
        try:
            async with self.single_flight(entry.caller_id):
                result = await entry.job()
        except Exception as e:
            # Delivered to the ticket holder rather than raised in the worker.
            logger.warning(
                "queued_request_failed",
                ticket_id=entry.ticket_id,
                error_kind=getattr(e, "kind", type(e).__name__),
                error=str(e),
            )
            outcome = TicketOutcome(entry.ticket_id, entry.caller_id, "failed", error=e)
        else:
            logger.info(
                "queued_request_complete",
                ticket_id=entry.ticket_id,
                duration_seconds=round(self._clock() - started, 2),
            )
            outcome = TicketOutcome(entry.ticket_id, entry.caller_id, "complete", result=result)

        async with self._lock:
            self._finish(entry, outcome)

    def _finish(self, entry: QueueEntry, outcome: TicketOutcome) -> None:
        self._record(outcome)
        if not entry.future.done():
            entry.future.set_result(outcome)

    def _record(self, outcome: TicketOutcome) -> None:
        self._outcomes[outcome.ticket_id] = outcome
        self._outcomes.move_to_end(outcome.ticket_id)
        while len(self._outcomes) > self._settings.queue_result_retention:
            self._outcomes.popitem(last=False)

    # Introspection

    async def status(self, caller_id: str) -> dict:
        async with self._lock:
            self._maybe_exit_queue_mode(self._clock())
            position = next(
                (n for n, e in enumerate(self._queue, 1) if e.caller_id == caller_id),
                None,
            )
            return {
                "in_queue": position is not None,
                "queue_position": position,
                "estimated_wait_seconds": self._wait_estimate(position) if position else None,
                "queue_mode_active": self._queue_mode,
                "total_queue_length": len(self._queue),
            }

    def ticket_outcome(self, ticket_id: str) -> TicketOutcome | None:
        return self._outcomes.get(ticket_id)

    async def wait(self, ticket_id: str) -> TicketOutcome:
        """Block until a queued ticket completes or fails."""
        for entry in (*self._queue, self._running):
            if entry is not None and entry.ticket_id == ticket_id:
                return await asyncio.shield(entry.future)
        outcome = self._outcomes.get(ticket_id)
        if outcome is None:
            raise KeyError(ticket_id)
        return outcome

    async def close(self) -> None:
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        logger.info("admission_closed", abandoned=len(self._queue))
