# group_archive/services/store_base.py

import asyncio
import logging

from group_archive.core.backends import BackendAdapter
from group_archive.core.errors import OperationTimeout
from group_archive.models import StoreResult


class BaseStore:
    """Runs backend calls for a store and turns failures into StoreResults.

    Embedded backends are called inline on the caller's thread. Networked
    ones run in a worker thread bounded by `timeout`; on timeout the thread
    is left to finish and its connection goes back to the pool. That thread
    may still commit, so a kind="timeout" result can stand for a row that
    was in fact written.
    """

    def __init__(self, backend: BackendAdapter, timeout: float = 5.0, supervisor=None):
        self.backend = backend
        self.timeout = timeout
        self.supervisor = supervisor

    async def _call(self, func, *args):
        if self.backend.runs_inline:
            return func(*args)
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            name = getattr(func, "__name__", "storage call")
            raise OperationTimeout(f"{name} took longer than {self.timeout}s") from e

    async def _execute(self, operation: str, key: str, func, *args) -> StoreResult:
        try:
            value = await self._call(func, *args)
        except OperationTimeout as e:
            return StoreResult.failed(operation, "timeout", e, key=key)
        except Exception as e:
            # Storage outages must never reach the ingestion path
            return StoreResult.failed(operation, "write_failed", e, key=key)
        # backends return False only for "nothing written"
        return StoreResult(operation=operation, key=key, changed=value is not False)

    def _finish(self, result: StoreResult) -> StoreResult:
        if self.supervisor is not None:
            self.supervisor.report(result)
        elif not result.ok:
            logging.error(f"Storage {result.operation} failed for {result.key}: {result.error}")
        return result
