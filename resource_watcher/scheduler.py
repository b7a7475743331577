"""Fixed-interval driver for the reconciler."""

from __future__ import annotations

import asyncio
from typing import Protocol

from resource_watcher.models.resources import CycleResult
from resource_watcher.observability.logging import get_logger

_logger = get_logger("scheduler")


class CycleRunner(Protocol):
    async def run_cycle(self) -> CycleResult: ...


class Scheduler:
    """Runs one cycle at start, then one per interval.

    The interval is measured from the start of each cycle. A cycle that
    overruns the interval is followed immediately by the next one; cycles
    never overlap. ``stop()`` interrupts the wait between cycles but lets an
    in-flight cycle finish, including its persist step.
    """

    def __init__(self, runner: CycleRunner, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._runner = runner
        self._interval = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.cycles_run = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Launch the loop as a background task."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="reconcile-loop")

    async def run(self) -> None:
        """Loop until ``request_stop()`` or ``stop()`` is called."""
        loop = asyncio.get_running_loop()
        _logger.info("scheduler_started", interval=self._interval)
        while not self._stop_event.is_set():
            cycle_started = loop.time()
            try:
                await self._runner.run_cycle()
            except Exception as exc:  # noqa: BLE001
                _logger.error("cycle_crashed", error=str(exc), exc_info=True)
            self.cycles_run += 1

            remaining = self._interval - (loop.time() - cycle_started)
            if remaining <= 0:
                _logger.warning("cycle_overran_interval", overrun=round(-remaining, 3))
                continue
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=remaining)
            except TimeoutError:
                continue
        _logger.info("scheduler_stopped", cycles=self.cycles_run)

    def request_stop(self) -> None:
        """Signal the loop to exit after the current cycle, without waiting."""
        self._stop_event.set()

    async def stop(self) -> None:
        """Signal the loop to exit and wait for any in-flight cycle to finish."""
        self._stop_event.set()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
