"""Tests for the change debouncer."""

import asyncio

import pytest

from code_buddy.watcher.debouncer import ChangeDebouncer

DELAY = 0.05


class RecordingPipeline:
    """Pipeline double that records each batch it receives."""

    def __init__(self, hold_first: bool = False):
        self.batches = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.hold_first = hold_first

    async def __call__(self, batch):
        self.batches.append(batch)
        self.started.set()
        if self.hold_first and len(self.batches) == 1:
            await self.release.wait()


@pytest.mark.asyncio
async def test_burst_triggers_single_run_with_union_of_paths():
    pipeline = RecordingPipeline()
    debouncer = ChangeDebouncer(pipeline, delay=DELAY)

    debouncer.on_file_event("a.py", "modified")
    debouncer.on_file_event("b.py", "added")
    debouncer.on_file_event("a.py", "modified")
    await asyncio.sleep(DELAY / 2)
    debouncer.on_file_event("c.py", "deleted")

    await asyncio.sleep(DELAY * 4)

    assert pipeline.batches == [frozenset({"a.py", "b.py", "c.py"})]
    assert debouncer.pending == frozenset()
    await debouncer.close()


@pytest.mark.asyncio
async def test_each_event_restarts_the_window():
    pipeline = RecordingPipeline()
    debouncer = ChangeDebouncer(pipeline, delay=DELAY * 3)

    for _ in range(4):
        debouncer.on_file_event("a.py")
        await asyncio.sleep(DELAY)

    assert pipeline.batches == []
    await asyncio.sleep(DELAY * 6)
    assert len(pipeline.batches) == 1
    await debouncer.close()


@pytest.mark.asyncio
async def test_event_during_run_is_deferred_until_run_completes():
    pipeline = RecordingPipeline(hold_first=True)
    debouncer = ChangeDebouncer(pipeline, delay=DELAY)

    debouncer.on_file_event("a.py")
    await asyncio.wait_for(pipeline.started.wait(), timeout=1)

    debouncer.on_file_event("b.py")
    assert debouncer.is_running
    assert not debouncer.timer_armed
    assert debouncer.pending == frozenset({"b.py"})

    await asyncio.sleep(DELAY * 3)
    assert len(pipeline.batches) == 1

    pipeline.release.set()
    await asyncio.sleep(DELAY * 4)

    assert pipeline.batches == [frozenset({"a.py"}), frozenset({"b.py"})]
    await debouncer.close()


@pytest.mark.asyncio
async def test_timer_firing_with_nothing_pending_does_nothing():
    pipeline = RecordingPipeline()
    debouncer = ChangeDebouncer(pipeline, delay=DELAY)

    debouncer._fire()
    await asyncio.sleep(DELAY)

    assert pipeline.batches == []
    assert not debouncer.is_running


@pytest.mark.asyncio
async def test_unknown_event_kind_is_rejected():
    debouncer = ChangeDebouncer(RecordingPipeline(), delay=DELAY)

    with pytest.raises(ValueError):
        debouncer.on_file_event("a.py", "renamed")


@pytest.mark.asyncio
async def test_close_cancels_pending_timer():
    pipeline = RecordingPipeline()
    debouncer = ChangeDebouncer(pipeline, delay=DELAY)

    debouncer.on_file_event("a.py")
    assert debouncer.timer_armed
    await debouncer.close()
    await asyncio.sleep(DELAY * 3)

    assert pipeline.batches == []
    assert not debouncer.timer_armed

    debouncer.on_file_event("b.py")
    assert debouncer.pending == frozenset()


@pytest.mark.asyncio
async def test_close_waits_for_in_flight_run():
    finished = []

    async def slow_pipeline(batch):
        await asyncio.sleep(DELAY)
        finished.append(batch)

    debouncer = ChangeDebouncer(slow_pipeline, delay=0.01)
    debouncer.on_file_event("a.py")
    await asyncio.sleep(0.03)
    assert debouncer.is_running

    await debouncer.close()

    assert finished == [frozenset({"a.py"})]


@pytest.mark.asyncio
async def test_pipeline_error_does_not_stop_later_runs():
    batches = []
    drained = []

    async def flaky_pipeline(batch):
        batches.append(batch)
        if len(batches) == 1:
            raise RuntimeError("boom")

    debouncer = ChangeDebouncer(flaky_pipeline, delay=DELAY, on_drained=lambda: drained.append(True))

    debouncer.on_file_event("a.py")
    await asyncio.sleep(DELAY * 3)
    debouncer.on_file_event("b.py")
    await asyncio.sleep(DELAY * 3)

    assert batches == [frozenset({"a.py"}), frozenset({"b.py"})]
    assert len(drained) == 2
    await debouncer.close()


@pytest.mark.asyncio
async def test_notify_threadsafe_from_worker_thread():
    pipeline = RecordingPipeline()
    debouncer = ChangeDebouncer(pipeline, delay=DELAY, loop=asyncio.get_running_loop())

    await asyncio.to_thread(debouncer.notify_threadsafe, "from_thread.py", "added")
    await asyncio.sleep(DELAY * 4)

    assert pipeline.batches == [frozenset({"from_thread.py"})]
    await debouncer.close()
