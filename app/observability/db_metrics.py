# observability/db_metrics.py
"""
Engine-level view of the user store's statements.

Statements are labelled "<verb>:<table>" (select:t_user, update:t_user, ...)
so accounting writes can be told apart from lookups. Constraint violations
(what add_user/set_user report as DuplicateKey) and rolled-back transactions
(every aborted store call) get their own counters.
"""
import re
import time
from typing import Optional
from prometheus_client import Histogram, Counter
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

STMT_LAT = Histogram(
    "userstore_db_statement_seconds", "t_user statement latency (s)",
    ["stmt"], buckets=(0.0005,0.001,0.005,0.01,0.025,0.05,0.1,0.25,0.5,1,2,5)
)
STMT_ERR = Counter("userstore_db_statement_errors_total", "Failed statements", ["stmt", "kind"])  # kind=integrity|other
ROLLBACKS = Counter("userstore_db_rollbacks_total", "Rolled-back store transactions")
COMMITS = Counter("userstore_db_commits_total", "Committed store transactions")

_TABLE = re.compile(r"\b(?:from|into|update)\s+[\"`]?(\w+)", re.IGNORECASE)

def stmt_label(sql: Optional[str]) -> str:
    if not sql or not sql.strip():
        return "other"
    verb = sql.lstrip().split(None, 1)[0].lower()
    m = _TABLE.search(sql)
    return f"{verb}:{m.group(1).lower()}" if m else verb

def init_db_metrics(engine: Engine):
    @event.listens_for(engine, "before_cursor_execute")
    def _before(conn, cur, stmt, params, ctx, execmany):
        ctx._t0 = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def _after(conn, cur, stmt, params, ctx, execmany):
        STMT_LAT.labels(stmt_label(stmt)).observe(time.perf_counter() - getattr(ctx, "_t0", time.perf_counter()))

    @event.listens_for(engine, "handle_error")
    def _on_err(ctx):
        kind = "integrity" if isinstance(ctx.sqlalchemy_exception, IntegrityError) else "other"
        STMT_ERR.labels(stmt_label(ctx.statement), kind).inc()

    @event.listens_for(engine, "commit")
    def _commit(conn):
        COMMITS.inc()

    @event.listens_for(engine, "rollback")
    def _rollback(conn):
        ROLLBACKS.inc()
