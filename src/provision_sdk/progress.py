"""Simulated progress feedback for batch requests.

The create endpoint answers once for the whole batch, so progress is approximated
locally: one account per tick until the batch size is reached.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from typing import Callable

DEFAULT_PROGRESS_INTERVAL = 1.5
DEFAULT_PROGRESS_LINGER = 3.0


def progress_percent(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up, so 12.5% shows as 13%.
    value = math.floor(completed / total * 100 + 0.5)
    return max(0, min(100, value))


@dataclass(frozen=True)
class ProgressUpdate:
    completed: int
    total: int
    message: str

    @property
    def percent(self) -> int:
        return progress_percent(self.completed, self.total)


class ProgressReporter:
    def __init__(
        self,
        total: int,
        on_update: Callable[[ProgressUpdate], None],
        *,
        interval: float = DEFAULT_PROGRESS_INTERVAL,
    ) -> None:
        if total < 1:
            raise ValueError("total must be >= 1")
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.total = total
        self.interval = interval
        self._on_update = on_update
        self._completed = 0
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None
        self._clear_timer: threading.Timer | None = None

    @property
    def completed(self) -> int:
        return self._completed

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def _emit(self, completed: int, message: str) -> None:
        self._completed = completed
        self._on_update(ProgressUpdate(completed=completed, total=self.total, message=message))

    def start(self) -> "ProgressReporter":
        if self._thread is not None:
            raise RuntimeError("progress reporter already started")
        with self._lock:
            self._emit(0, "Starting...")
        self._thread = threading.Thread(
            target=self._run,
            name=f"progress-{self.total}",
            daemon=True,
        )
        self._thread.start()
        return self

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            if not self.tick():
                return

    def tick(self) -> bool:
        """Advance by one; returns False once stopped or the total is reached."""
        with self._lock:
            if self._stopped.is_set() or self._completed >= self.total:
                return False
            completed = self._completed + 1
            self._emit(completed, f"Creating account {completed}/{self.total}...")
            return completed < self.total

    def stop(self) -> None:
        with self._lock:
            self._stopped.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def complete(self, message: str = "Complete!") -> None:
        self.stop()
        with self._lock:
            self._emit(self.total, message)

    def fail(self, message: str = "Failed!") -> None:
        self.stop()
        with self._lock:
            self._emit(0, message)

    def schedule_clear(self, callback: Callable[[], None], linger: float) -> threading.Timer | None:
        self.cancel_clear()
        if linger <= 0:
            callback()
            return None
        timer = threading.Timer(linger, callback)
        timer.daemon = True
        timer.start()
        self._clear_timer = timer
        return timer

    def cancel_clear(self) -> None:
        if self._clear_timer is not None:
            self._clear_timer.cancel()
            self._clear_timer = None

    def __enter__(self) -> "ProgressReporter":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.stop()
