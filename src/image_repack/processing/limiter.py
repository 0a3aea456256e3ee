"""计数型并发闸门。"""

from __future__ import annotations

import threading
from collections import deque
from types import TracebackType
from typing import Optional


class ConcurrencyLimiter:
    """限制同时进行的操作数量，等待者按 FIFO 顺序被放行。

    闸门本身不关心被限制的是什么操作，也不提供取消：调用方在 ``acquire``
    成功后必须在所有退出路径上调用 ``release``。
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity 必须大于 0: {capacity}")
        self._capacity = capacity
        self._active = 0
        self._waiters: deque[threading.Event] = deque()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @property
    def waiting(self) -> int:
        with self._lock:
            return len(self._waiters)

    def acquire(self) -> None:
        """阻塞直到获得一个名额。"""

        with self._lock:
            # 有人排队时新来者也必须排队，否则会越过队首。
            if self._active < self._capacity and not self._waiters:
                self._active += 1
                return
            ticket = threading.Event()
            self._waiters.append(ticket)
        ticket.wait()

    def release(self) -> None:
        """释放一个名额；若有等待者，名额直接移交给等待最久的一个。"""

        with self._lock:
            if self._active <= 0:
                raise RuntimeError("release() 次数多于 acquire()")
            if self._waiters:
                self._waiters.popleft().set()
            else:
                self._active -= 1

    def __enter__(self) -> "ConcurrencyLimiter":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()
