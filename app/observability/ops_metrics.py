import time
from contextlib import contextmanager
from prometheus_client import Counter, Histogram

# Count successes/failures per store operation
OPS = Counter("userstore_ops_total", "User store operations", ["op", "outcome"])  # outcome=ok|error

# Measure duration per operation (guard wait included)
OPS_LAT = Histogram(
    "userstore_ops_duration_seconds", "Op duration (s)", ["op"],
    buckets=(0.001,0.005,0.01,0.025,0.05,0.1,0.25,0.5,1,2,5)
)

# Usage updates refused at the quota boundary
QUOTA_REJECTIONS = Counter(
    "userstore_quota_rejections_total", "Usage updates refused", ["reason"]  # quota_exceeded|negative_usage
)

# Time spent waiting for the accounting guard
GUARD_WAIT = Histogram(
    "userstore_guard_wait_seconds", "Accounting guard wait (s)", ["mode", "outcome"],  # mode=shared|exclusive, outcome=acquired|canceled|deadline
    buckets=(0.0001,0.001,0.005,0.01,0.05,0.1,0.5,1,5)
)

def ops_ok(op: str):
    OPS.labels(op=op, outcome="ok").inc()

def ops_err(op: str):
    OPS.labels(op=op, outcome="error").inc()

@contextmanager
def time_op(op: str):
    """Sync timing + outcome."""
    t0 = time.perf_counter()
    try:
        yield
        ops_ok(op)
    except Exception:
        ops_err(op)
        raise
    finally:
        OPS_LAT.labels(op=op).observe(time.perf_counter() - t0)
