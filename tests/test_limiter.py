"""并发闸门：容量上限与 FIFO 放行顺序。"""

from __future__ import annotations

import threading
import time
from typing import Callable

import pytest

from image_repack.processing.limiter import ConcurrencyLimiter


def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("等待条件超时")
        time.sleep(0.005)


def test_limiter_admits_queued_waiters_in_fifo_order() -> None:
    limiter = ConcurrencyLimiter(2)
    admitted: list[int] = []
    lock = threading.Lock()

    def worker(name: int) -> None:
        limiter.acquire()
        with lock:
            admitted.append(name)

    threads = []
    for idx in range(5):
        thread = threading.Thread(target=worker, args=(idx,), daemon=True)
        thread.start()
        threads.append(thread)
        # 逐个启动，确保进入等待队列的顺序确定。
        if idx < 2:
            _wait_until(lambda n=idx: len(admitted) == n + 1)
        else:
            _wait_until(lambda n=idx: limiter.waiting == n - 1)

    assert admitted == [0, 1]
    assert limiter.active == 2
    assert limiter.waiting == 3

    for expected in (3, 4, 5):
        limiter.release()
        _wait_until(lambda n=expected: len(admitted) == n)
        time.sleep(0.02)
        # 每次释放只放行一个等待者。
        assert len(admitted) == expected
        assert limiter.active == 2

    assert admitted == [0, 1, 2, 3, 4]
    assert limiter.waiting == 0

    for thread in threads:
        thread.join(timeout=5)

    limiter.release()
    limiter.release()
    assert limiter.active == 0


def test_limiter_never_exceeds_capacity() -> None:
    limiter = ConcurrencyLimiter(3)
    lock = threading.Lock()
    active = 0
    peak = 0

    def job() -> None:
        nonlocal active, peak
        with limiter:
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with lock:
                active -= 1

    threads = [threading.Thread(target=job) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert 1 <= peak <= 3
    assert limiter.active == 0
    assert limiter.waiting == 0


def test_release_without_acquire_raises() -> None:
    limiter = ConcurrencyLimiter(1)

    with pytest.raises(RuntimeError):
        limiter.release()


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ConcurrencyLimiter(0)
