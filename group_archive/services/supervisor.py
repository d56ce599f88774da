# group_archive/services/supervisor.py

import asyncio
import logging
from collections import deque
from typing import Optional

from group_archive.models import StoreResult


class IngestionSupervisor:
    """Receives every StoreResult and decides between logging and alerting.

    A failure is logged at ERROR. Once `alert_threshold` failures arrive in a
    row a single CRITICAL storage alert is logged; the next success ends the
    streak.

    With fire_and_forget=True (networked storage) dispatch() schedules store
    calls as tasks and returns at once; drain() waits for whatever is still
    running.
    """

    def __init__(self, fire_and_forget: bool = False, alert_threshold: int = 5, history: int = 100):
        self.fire_and_forget = fire_and_forget
        self.alert_threshold = alert_threshold
        self.consecutive_failures = 0
        self.total_failures = 0
        self.recent_failures = deque(maxlen=history)
        self._pending = set()

    @classmethod
    def for_backend(cls, backend, settings):
        return cls(
            fire_and_forget=not backend.runs_inline,
            alert_threshold=settings.STORAGE_ALERT_THRESHOLD,
        )

    @property
    def alerting(self) -> bool:
        return self.consecutive_failures >= self.alert_threshold

    @property
    def pending(self) -> int:
        return len(self._pending)

    def report(self, result: StoreResult) -> None:
        if result.ok:
            if result.kind:
                logging.warning(f"Storage {result.operation} for {result.key} degraded: {result.error}")
            if self.alerting:
                logging.info(
                    f"Storage recovered after {self.consecutive_failures} consecutive failures"
                )
            self.consecutive_failures = 0
            return

        self.consecutive_failures += 1
        self.total_failures += 1
        self.recent_failures.append(result)
        logging.error(f"Storage {result.operation} failed for {result.key}: {result.error}")
        if self.consecutive_failures == self.alert_threshold:
            logging.critical(
                f"Storage alert: {self.consecutive_failures} consecutive failures "
                f"(last: {result.operation} {result.kind})"
            )

    async def dispatch(self, operation) -> Optional[StoreResult]:
        """Run a store coroutine, or schedule it when writes are fire-and-forget."""
        if not self.fire_and_forget:
            return await operation
        task = asyncio.create_task(operation)
        self._pending.add(task)
        task.add_done_callback(self._task_done)
        return None

    def _task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logging.warning("Storage task cancelled before completion")
            return
        error = task.exception()
        if error is not None:
            # stores report their own results; this only catches bugs in them
            self.report(StoreResult.failed("dispatch", "write_failed", error))

    async def drain(self) -> None:
        """Wait until every dispatched store call has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
