import threading
import time
import pytest
from prometheus_client import REGISTRY

from methods.manager.AccountingGuard import AccountingGuard
from methods.manager.OpContext import OpContext
from methods.users.errors import Canceled, DeadlineExceeded


@pytest.fixture()
def guard():
    return AccountingGuard(poll_interval=0.01)

def test_readers_share(guard):
    with guard.shared():
        with guard.shared(OpContext.with_timeout(0.5)):
            assert guard.readers == 2
    assert guard.readers == 0

def test_writer_excludes_reader(guard):
    guard.acquire_exclusive()
    try:
        with pytest.raises(DeadlineExceeded):
            guard.acquire_shared(OpContext.with_timeout(0.05))
    finally:
        guard.release_exclusive()
    with guard.shared(OpContext.with_timeout(0.5)):
        pass

def test_reader_excludes_writer(guard):
    with guard.shared():
        with pytest.raises(DeadlineExceeded):
            guard.acquire_exclusive(OpContext.with_timeout(0.05))
    assert not guard.writer_active
    with guard.exclusive(OpContext.with_timeout(0.5)):
        assert guard.writer_active

def test_cancel_while_waiting_releases_waiter(guard):
    ctx = OpContext.background()
    errors = []

    def wait_for_write():
        try:
            guard.acquire_exclusive(ctx)
        except Canceled as e:
            errors.append(e)

    guard.acquire_shared()
    t = threading.Thread(target=wait_for_write)
    t.start()
    time.sleep(0.05)
    ctx.cancel()
    t.join(timeout=2)
    guard.release_shared()

    assert not t.is_alive()
    assert len(errors) == 1
    # the canceled writer no longer blocks readers
    with guard.shared(OpContext.with_timeout(0.5)):
        pass

def test_waiting_writer_blocks_new_readers(guard):
    guard.acquire_shared()
    got_write = threading.Event()

    def writer():
        with guard.exclusive():
            got_write.set()

    t = threading.Thread(target=writer)
    t.start()
    time.sleep(0.05)
    # writer is queued: a fresh reader must not jump ahead of it
    with pytest.raises(DeadlineExceeded):
        guard.acquire_shared(OpContext.with_timeout(0.05))
    guard.release_shared()
    t.join(timeout=2)
    assert got_write.is_set()

def test_writes_are_mutually_exclusive(guard):
    inside = []
    overlap = []

    def work():
        for _ in range(20):
            with guard.exclusive():
                inside.append(1)
                if len(inside) > 1:
                    overlap.append(1)
                time.sleep(0.0005)
                inside.pop()

    threads = [threading.Thread(target=work) for _ in range(5)]
    for t in threads: t.start()
    for t in threads: t.join()
    assert overlap == []

def test_unbalanced_release_is_an_error(guard):
    with pytest.raises(RuntimeError):
        guard.release_shared()
    with pytest.raises(RuntimeError):
        guard.release_exclusive()

def test_already_canceled_context_fails_fast(guard):
    ctx = OpContext.background()
    ctx.cancel()
    # uncontended acquisition still honours the context
    with pytest.raises(Canceled):
        guard.acquire_exclusive(ctx)
    assert not guard.writer_active

def _wait_count(mode, outcome):
    return REGISTRY.get_sample_value(
        "userstore_guard_wait_seconds_count", {"mode": mode, "outcome": outcome}
    ) or 0.0

def test_failed_waits_are_still_timed(guard):
    deadline_before = _wait_count("shared", "deadline")
    canceled_before = _wait_count("exclusive", "canceled")
    acquired_before = _wait_count("exclusive", "acquired")

    with guard.exclusive():
        with pytest.raises(DeadlineExceeded):
            guard.acquire_shared(OpContext.with_timeout(0.02))
    ctx = OpContext.background()
    ctx.cancel()
    with pytest.raises(Canceled):
        guard.acquire_exclusive(ctx)

    assert _wait_count("shared", "deadline") == deadline_before + 1
    assert _wait_count("exclusive", "canceled") == canceled_before + 1
    assert _wait_count("exclusive", "acquired") == acquired_before + 1
