# /app/methods/manager/__init__.py
from typing import Optional
from threading import Lock

from methods.database.database import SessionLocal
from .AccountingGuard import AccountingGuard
from .OpContext import OpContext
from .UserStore import Direction, UserStore

_USER_STORE: Optional[UserStore] = None
_USER_STORE_LOCK = Lock()

def get_user_store() -> UserStore:
    """Process-wide store on the configured engine (one guard per process)."""
    global _USER_STORE
    with _USER_STORE_LOCK:
        if _USER_STORE is None:
            _USER_STORE = UserStore(SessionLocal)
        return _USER_STORE
