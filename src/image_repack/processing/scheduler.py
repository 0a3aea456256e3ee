"""受限并发的任务调度：window 模式与 chunked 模式。

两种模式下，每个任务都先经过 ConcurrencyLimiter 放行，完成回调在释放名额之前执行，
因此并发为 1 时完成顺序与调度顺序一致。

- window：单一生产者按顺序放行任务，同时在途的任务数只受并发上限约束。
- chunked：按固定大小分块，上一块全部完成后才开始下一块。
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Iterator, Sequence, TypeVar

from image_repack.core.config import SCHEDULE_MODES
from image_repack.core.models import Failed, SourceItem, TransformOutcome
from image_repack.processing.limiter import ConcurrencyLimiter

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[SourceItem], TransformOutcome]
CompletionCallback = Callable[[SourceItem, TransformOutcome], None]


def iter_chunks(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """将列表切分为连续的定长块，最后一块可能更短。"""

    if size < 1:
        raise ValueError(f"分块大小必须大于 0: {size}")
    for start in range(0, len(items), size):
        yield items[start : start + size]


def run_scheduled(
    items: Sequence[SourceItem],
    handler: Handler,
    *,
    concurrency: int,
    chunk_size: int,
    mode: str = "window",
    on_complete: CompletionCallback,
) -> None:
    """按调度模式对每个条目执行 handler，每个条目恰好产生一次 on_complete。"""

    if mode not in SCHEDULE_MODES:
        raise ValueError(f"未知的调度模式: {mode}")

    limiter = ConcurrencyLimiter(concurrency)

    def run_one(item: SourceItem) -> None:
        try:
            on_complete(item, _call_handler(handler, item))
        finally:
            limiter.release()

    def submit(executor: ThreadPoolExecutor, item: SourceItem) -> Future[None]:
        limiter.acquire()
        try:
            return executor.submit(run_one, item)
        except BaseException:
            limiter.release()
            raise

    with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="transform") as executor:
        if mode == "chunked":
            for index, chunk in enumerate(iter_chunks(items, chunk_size)):
                LOGGER.debug("开始第 %d 块，共 %d 个任务", index + 1, len(chunk))
                futures = [submit(executor, item) for item in chunk]
                _drain(futures)
        else:
            pending: list[Future[None]] = []
            for item in items:
                pending.append(submit(executor, item))
                pending = _reap(pending)
            _drain(pending)


def _call_handler(handler: Handler, item: SourceItem) -> TransformOutcome:
    try:
        return handler(item)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("任务执行异常：%s", item.path)
        return Failed(path=item.path, error=f"{type(exc).__name__}: {exc}")


def _reap(futures: list[Future[None]]) -> list[Future[None]]:
    """丢弃已完成的 future（完成回调中的异常在此处抛出），返回未完成的部分。"""

    remaining: list[Future[None]] = []
    for future in futures:
        if future.done():
            future.result()
        else:
            remaining.append(future)
    return remaining


def _drain(futures: list[Future[None]]) -> None:
    wait(futures)
    for future in futures:
        future.result()
