# tests/conftest.py
import pytest
import os, sys
from pathlib import Path

# repo root = folder that contains both `app/` and `tests/`
REPO_ROOT = Path(__file__).resolve().parents[1]
APP_DIR = REPO_ROOT / "app"

# Make `from methods...` / `from configs...` work
sys.path.insert(0, str(APP_DIR))

# keep the suite off any developer database / log dir
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = ""

from methods.database.database import init_db, make_engine, make_session_factory  # noqa: E402
from methods.manager.AccountingGuard import AccountingGuard  # noqa: E402
from methods.manager.UserStore import UserStore  # noqa: E402
from methods.users.domain import Quota, User  # noqa: E402


@pytest.fixture()
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'users.db'}")
    init_db(eng)
    yield eng
    eng.dispose()

@pytest.fixture()
def sessions(engine):
    return make_session_factory(engine)

@pytest.fixture()
def store(sessions):
    return UserStore(sessions, AccountingGuard(poll_interval=0.01))

@pytest.fixture()
def make_user():
    def _make(id=1, name=None, space_limit=100, used_space=0, **kw):
        return User(
            id=id,
            name=name if name is not None else f"user{id}",
            pwd=kw.pop("pwd", f"hashed-{id}"),
            used_space=used_space,
            quota=Quota(space_limit=space_limit),
            **kw,
        )
    return _make
