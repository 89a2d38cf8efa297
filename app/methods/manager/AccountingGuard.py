# /app/methods/manager/AccountingGuard.py
from __future__ import annotations
from contextlib import contextmanager
from threading import Condition, Lock
from typing import Callable, Optional
import logging
import time

from configs.config import GUARD_POLL_INTERVAL
from observability.ops_metrics import GUARD_WAIT
from methods.users.errors import Canceled, DeadlineExceeded
from .OpContext import OpContext

logger = logging.getLogger(__name__)


class AccountingGuard:
    """
    Reader/writer gate shared by every operation of one store.

    Any number of readers OR exactly one writer. A waiting writer blocks new
    readers so a steady stream of lookups cannot starve usage updates.
    Waiters wake at least every `poll_interval` seconds to honour their
    context's cancel flag and deadline.
    """
    def __init__(self, poll_interval: float = GUARD_POLL_INTERVAL) -> None:
        self._cond = Condition(Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0
        self._poll_interval = poll_interval

    # ----- introspection (tests / debugging)
    @property
    def readers(self) -> int:
        with self._cond:
            return self._readers

    @property
    def writer_active(self) -> bool:
        with self._cond:
            return self._writer

    # ----- acquisition
    @contextmanager
    def _timed(self, mode: str):
        """Record the wait whether it ends in the lock, a cancel or a deadline."""
        t0 = time.perf_counter()
        outcome = "acquired"
        try:
            yield
        except Canceled:
            outcome = "canceled"
            raise
        except DeadlineExceeded:
            outcome = "deadline"
            raise
        finally:
            GUARD_WAIT.labels(mode=mode, outcome=outcome).observe(time.perf_counter() - t0)

    def _wait_until(self, ready: Callable[[], bool], ctx: Optional[OpContext]) -> None:
        # caller holds self._cond
        while not ready():
            timeout = self._poll_interval
            if ctx is not None:
                ctx.raise_if_done()
                remaining = ctx.remaining()
                if remaining is not None:
                    timeout = max(0.0, min(timeout, remaining))
            self._cond.wait(timeout)
        if ctx is not None:
            ctx.raise_if_done()

    def acquire_shared(self, ctx: Optional[OpContext] = None) -> None:
        with self._timed("shared"), self._cond:
            self._wait_until(lambda: not self._writer and self._writers_waiting == 0, ctx)
            self._readers += 1

    def release_shared(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_shared without a matching acquire")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_exclusive(self, ctx: Optional[OpContext] = None) -> None:
        with self._timed("exclusive"), self._cond:
            self._writers_waiting += 1
            try:
                self._wait_until(lambda: not self._writer and self._readers == 0, ctx)
            finally:
                self._writers_waiting -= 1
                # a canceled writer may have been the only thing holding readers back
                self._cond.notify_all()
            self._writer = True

    def release_exclusive(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_exclusive without a matching acquire")
            self._writer = False
            self._cond.notify_all()

    # ----- context managers
    @contextmanager
    def shared(self, ctx: Optional[OpContext] = None):
        self.acquire_shared(ctx)
        try:
            yield
        finally:
            self.release_shared()

    @contextmanager
    def exclusive(self, ctx: Optional[OpContext] = None):
        self.acquire_exclusive(ctx)
        try:
            yield
        finally:
            self.release_exclusive()
