from __future__ import annotations

import threading
import time

import pytest

from provision_sdk.progress import ProgressReporter, ProgressUpdate, progress_percent


def _wait_for(predicate, timeout: float = 2.0) -> bool:  # noqa: ANN001
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.mark.parametrize(
    ("completed", "total", "expected"),
    [(0, 5, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (5, 5, 100), (7, 5, 100), (-1, 5, 0), (1, 0, 0)],
)
def test_progress_percent(completed, total, expected) -> None:
    assert progress_percent(completed, total) == expected


def test_ticks_are_monotonic_and_capped() -> None:
    updates: list[ProgressUpdate] = []
    reporter = ProgressReporter(5, updates.append, interval=60)

    advanced = [reporter.tick() for _ in range(8)]

    assert [update.completed for update in updates] == [1, 2, 3, 4, 5]
    assert advanced == [True, True, True, True, False, False, False, False]
    assert updates[1].message == "Creating account 2/5..."
    assert all(update.total == 5 for update in updates)


def test_no_ticks_after_stop() -> None:
    updates: list[ProgressUpdate] = []
    reporter = ProgressReporter(5, updates.append, interval=60)
    reporter.tick()
    reporter.stop()

    assert reporter.tick() is False
    assert [update.completed for update in updates] == [1]
    assert reporter.stopped


def test_background_cadence_reaches_total_and_stops() -> None:
    updates: list[ProgressUpdate] = []
    reporter = ProgressReporter(5, updates.append, interval=0.01)

    reporter.start()
    assert _wait_for(lambda: reporter.completed == 5)
    time.sleep(0.05)
    reporter.stop()

    assert [update.completed for update in updates] == [0, 1, 2, 3, 4, 5]
    assert updates[0].message == "Starting..."


def test_cancel_before_total_emits_prefix_only() -> None:
    updates: list[ProgressUpdate] = []
    reporter = ProgressReporter(50, updates.append, interval=0.01)

    reporter.start()
    assert _wait_for(lambda: reporter.completed >= 2)
    reporter.stop()
    seen = len(updates)
    time.sleep(0.05)

    assert len(updates) == seen
    completed = [update.completed for update in updates]
    assert completed == list(range(len(completed)))
    assert completed[-1] < 50


def test_start_twice_is_rejected() -> None:
    reporter = ProgressReporter(1, lambda update: None, interval=60)
    reporter.start()
    try:
        with pytest.raises(RuntimeError):
            reporter.start()
    finally:
        reporter.stop()


def test_complete_and_fail_emit_final_state() -> None:
    updates: list[ProgressUpdate] = []
    reporter = ProgressReporter(4, updates.append, interval=60)
    with reporter:
        reporter.tick()
    reporter.complete()

    assert updates[-1] == ProgressUpdate(4, 4, "Complete!")
    assert updates[-1].percent == 100

    failed: list[ProgressUpdate] = []
    other = ProgressReporter(4, failed.append, interval=60)
    other.start()
    other.fail()
    assert failed[-1] == ProgressUpdate(0, 4, "Failed!")


def test_schedule_clear_runs_after_linger() -> None:
    cleared = threading.Event()
    reporter = ProgressReporter(1, lambda update: None, interval=60)

    timer = reporter.schedule_clear(cleared.set, 0.01)

    assert timer is not None
    assert cleared.wait(2.0)


def test_schedule_clear_without_linger_runs_immediately() -> None:
    calls: list[str] = []
    reporter = ProgressReporter(1, lambda update: None, interval=60)

    assert reporter.schedule_clear(lambda: calls.append("clear"), 0) is None
    assert calls == ["clear"]


def test_cancel_clear_prevents_callback() -> None:
    cleared = threading.Event()
    reporter = ProgressReporter(1, lambda update: None, interval=60)

    reporter.schedule_clear(cleared.set, 0.2)
    reporter.cancel_clear()

    assert not cleared.wait(0.3)


@pytest.mark.parametrize(("total", "interval"), [(0, 1.0), (3, 0)])
def test_invalid_arguments(total, interval) -> None:
    with pytest.raises(ValueError):
        ProgressReporter(total, lambda update: None, interval=interval)
