# /app/methods/manager/OpContext.py
from __future__ import annotations
from typing import Optional
import threading
import time

from configs.config import OP_TIMEOUT
from methods.users.errors import Canceled, DeadlineExceeded


class OpContext:
    """
    Cancellation flag + optional monotonic deadline handed to every store call.
    Can be canceled from any thread.
    """
    def __init__(self, deadline: Optional[float] = None) -> None:
        self.deadline = deadline
        self._canceled = threading.Event()

    @classmethod
    def background(cls) -> "OpContext":
        return cls()

    @classmethod
    def with_timeout(cls, seconds: Optional[float] = None) -> "OpContext":
        """Deadline `seconds` from now; falls back to OP_TIMEOUT (0 → none)."""
        seconds = OP_TIMEOUT if seconds is None else seconds
        if not seconds:
            return cls()
        return cls(time.monotonic() + seconds)

    def cancel(self) -> None:
        self._canceled.set()

    @property
    def canceled(self) -> bool:
        return self._canceled.is_set()

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def err(self) -> Optional[Exception]:
        if self._canceled.is_set():
            return Canceled("operation canceled")
        r = self.remaining()
        if r is not None and r <= 0:
            return DeadlineExceeded("operation deadline exceeded")
        return None

    def raise_if_done(self) -> None:
        e = self.err()
        if e is not None:
            raise e
