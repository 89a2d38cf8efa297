# /app/methods/database/database.py
import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool
from configs.config import DATABASE_URL, DB_ECHO

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str = DATABASE_URL, echo: bool = DB_ECHO) -> Engine:
    """Build an engine; SQLite connections are shared across worker threads."""
    kwargs = {"echo": echo, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, future=True)


def init_db(bind: Engine) -> None:
    """Create t_user if it does not exist yet."""
    from . import models  # noqa: F401  registers the mapping on Base

    Base.metadata.create_all(bind)
    logger.info("database.py: [init_db] schema ready on %s", bind.url)


engine = make_engine()
SessionLocal = make_session_factory(engine)


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal):
    """Commit on success, roll back on any exception, always close."""
    db: Session = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

