"""
Exclusive execution queue for a database session.

Every statement a session prepares or executes runs as one unit of work on
a single dedicated worker thread, first in first out, never overlapping.
Callers block until their unit completes; the result (or exception) is
handed back to them. Units submitted from the worker thread itself run
inline so nested calls cannot deadlock. There is no cancellation or
timeout: a long statement holds up everything queued behind it.
"""
import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ExecutionQueue:
    """Single-worker FIFO queue.
    """

    def __init__(self, name: str = 'litedb') -> None:
        self.name = name
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.RLock()
        self._local = threading.local()
        self.completed = 0

    def __repr__(self) -> str:
        state = 'running' if self._executor is not None else 'idle'
        return f'ExecutionQueue({self.name!r}, {state}, completed={self.completed})'

    @property
    def in_worker(self) -> bool:
        """True when called from this queue's worker thread."""
        return getattr(self._local, 'active', False)

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=self.name)
                logger.debug(f'Started execution worker {self.name}')
            return self._executor

    def _call(self, fn: Callable[..., T], args: tuple, kwargs: dict) -> T:
        self._local.active = True
        try:
            return fn(*args, **kwargs)
        finally:
            self.completed += 1

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a unit of work on the worker and wait for its result."""
        if self.in_worker:
            return fn(*args, **kwargs)
        future = self._get_executor().submit(self._call, fn, args, kwargs)
        return future.result()

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker after queued units finish."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
            logger.debug(f'Stopped execution worker {self.name}')
