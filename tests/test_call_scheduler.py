import asyncio

import pytest

from scheduler.call_scheduler import ApsTaskScheduler


@pytest.fixture
async def aps():
    sch = ApsTaskScheduler("UTC")
    sch.start()
    yield sch
    sch.shutdown(wait=False)


async def test_one_shot_job_runs_after_delay(aps):
    fired = asyncio.Event()
    seen = []

    async def job(value):
        seen.append(value)
        fired.set()

    aps.schedule(0.05, job, "ping")
    await asyncio.wait_for(fired.wait(), timeout=5)

    assert seen == ["ping"]
    assert aps.pending() == 0


async def test_cancelled_job_never_runs(aps):
    seen = []

    async def job():
        seen.append("ran")

    handle = aps.schedule(0.2, job)
    assert handle.cancel() is True
    assert handle.cancel() is False

    await asyncio.sleep(0.4)
    assert seen == []
    assert aps.pending() == 0


async def test_start_and_shutdown_are_idempotent():
    sch = ApsTaskScheduler("UTC")
    sch.start()
    sch.start()
    assert sch.pending() == 0

    sch.shutdown(wait=False)
    sch.shutdown(wait=False)
    assert not hasattr(sch, "running")
