"""Tests for per-caller single-flight and the load-triggered queue."""

import asyncio

import pytest

from conftest import FakeClock
from evidence_engine.admission.controller import AdmissionController
from evidence_engine.exceptions import CallerBusyError, QueueFullError, QueueTimeoutError
from evidence_engine.models.domain import QueueTicket


async def _yield(_seconds: float) -> None:
    await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def admission(settings, clock):
    controller = AdmissionController(settings, clock=clock, sleep=_yield)
    yield controller
    await controller.close()


def _blocking_job(started: asyncio.Event, release: asyncio.Event, result="done"):
    async def job():
        started.set()
        await release.wait()
        return result

    return job


def _recording_job(log: list, name: str):
    async def job():
        log.append(name)
        return name

    return job


async def test_single_flight_rejects_second_request(admission, clock):
    async with admission.single_flight("alice"):
        clock.advance(10)
        with pytest.raises(CallerBusyError) as exc:
            async with admission.single_flight("alice"):
                pass
        assert exc.value.retry_after_seconds == 290

        # Other callers are unaffected.
        async with admission.single_flight("bob"):
            pass

    async with admission.single_flight("alice"):
        pass


async def test_stale_lock_is_force_reset(admission, clock):
    stale = admission.single_flight("alice")
    await stale.__aenter__()
    clock.advance(301)

    fresh = admission.single_flight("alice")
    await fresh.__aenter__()

    # Releasing the stale holder must not free the newer one.
    await stale.__aexit__(None, None, None)
    with pytest.raises(CallerBusyError):
        async with admission.single_flight("alice"):
            pass

    await fresh.__aexit__(None, None, None)
    async with admission.single_flight("alice"):
        pass


async def test_lock_released_when_job_fails(admission):
    async def boom():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await admission.submit("alice", boom)
    assert await admission.submit("alice", _recording_job([], "ok")) == "ok"


async def test_normal_submit_runs_immediately(admission):
    assert await admission.submit("alice", _recording_job([], "result")) == "result"
    assert not admission.queue_mode_active


async def test_concurrent_submit_same_caller_rejected(admission):
    started, release = asyncio.Event(), asyncio.Event()
    first = asyncio.create_task(admission.submit("alice", _blocking_job(started, release)))
    await started.wait()

    with pytest.raises(CallerBusyError):
        await admission.submit("alice", _recording_job([], "second"))

    release.set()
    assert await first == "done"


async def test_throttle_threshold(admission):
    await admission.report_throttle(2)
    assert not admission.queue_mode_active
    await admission.report_throttle(3)
    assert admission.queue_mode_active


async def test_queue_runs_in_fifo_order(admission):
    await admission.report_throttle(3)
    order = []
    tickets = [await admission.submit(name, _recording_job(order, name)) for name in "abc"]

    assert all(isinstance(t, QueueTicket) for t in tickets)
    assert [t.position for t in tickets] == [1, 2, 3]
    assert [t.estimated_wait_seconds for t in tickets] == [0, 60, 120]

    outcomes = [await admission.wait(t.ticket_id) for t in tickets]
    assert order == ["a", "b", "c"]
    assert [o.status for o in outcomes] == ["complete"] * 3
    assert outcomes[1].result == "b"


async def test_queue_status(admission):
    await admission.report_throttle(3)
    started, release = asyncio.Event(), asyncio.Event()
    await admission.submit("a", _blocking_job(started, release))
    await started.wait()
    await admission.submit("b", _recording_job([], "b"))

    status = await admission.status("b")
    assert status == {
        "in_queue": True,
        "queue_position": 1,
        "estimated_wait_seconds": 0,
        "queue_mode_active": True,
        "total_queue_length": 1,
    }
    assert (await admission.status("zed"))["in_queue"] is False
    release.set()


async def test_queue_full(settings, clock):
    settings.queue_max_length = 2
    admission = AdmissionController(settings, clock=clock, sleep=_yield)
    await admission.report_throttle(3)
    started, release = asyncio.Event(), asyncio.Event()
    await admission.submit("a", _blocking_job(started, release))
    await started.wait()
    await admission.submit("b", _recording_job([], "b"))
    await admission.submit("c", _recording_job([], "c"))

    with pytest.raises(QueueFullError):
        await admission.submit("d", _recording_job([], "d"))
    release.set()
    await admission.close()


async def test_caller_already_queued_or_running(admission):
    await admission.report_throttle(3)
    started, release = asyncio.Event(), asyncio.Event()
    await admission.submit("a", _blocking_job(started, release))
    await started.wait()
    await admission.submit("b", _recording_job([], "b"))

    with pytest.raises(CallerBusyError):
        await admission.submit("b", _recording_job([], "again"))
    with pytest.raises(CallerBusyError):
        await admission.submit("a", _recording_job([], "again"))
    release.set()


async def test_failed_job_delivered_to_ticket(admission):
    await admission.report_throttle(3)

    async def boom():
        raise RuntimeError("boom")

    ticket = await admission.submit("a", boom)
    outcome = await admission.wait(ticket.ticket_id)
    assert outcome.status == "failed"
    assert isinstance(outcome.error, RuntimeError)
    assert admission.ticket_outcome(ticket.ticket_id) is outcome


async def test_queued_request_expires(admission, clock):
    await admission.report_throttle(3)
    started, release = asyncio.Event(), asyncio.Event()
    first = await admission.submit("a", _blocking_job(started, release))
    await started.wait()
    late = await admission.submit("b", _recording_job([], "b"))

    clock.advance(601)
    release.set()

    assert (await admission.wait(first.ticket_id)).status == "complete"
    outcome = await admission.wait(late.ticket_id)
    assert outcome.status == "failed"
    assert isinstance(outcome.error, QueueTimeoutError)


async def test_queue_mode_exits_after_cooldown(admission, clock):
    await admission.report_throttle(3)
    clock.advance(60)
    assert (await admission.status("a"))["queue_mode_active"] is True

    clock.advance(61)
    assert (await admission.status("a"))["queue_mode_active"] is False
    assert await admission.submit("a", _recording_job([], "now")) == "now"


async def test_wait_unknown_ticket(admission):
    with pytest.raises(KeyError):
        await admission.wait("missing")
