"""调度器：每个条目恰好完成一次、并发上限、分块屏障与顺序。"""

from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from image_repack.core.models import Failed, SourceItem, Succeeded, TransformOutcome
from image_repack.processing.scheduler import iter_chunks, run_scheduled


def _items(count: int) -> list[SourceItem]:
    return [
        SourceItem(path=Path(f"/virtual/{idx:03d}.png"), size_bytes=100, name=f"{idx:03d}.png", relative_path=Path(f"{idx:03d}.png"))
        for idx in range(count)
    ]


def _success(item: SourceItem) -> Succeeded:
    return Succeeded(
        path=item.path,
        original_bytes=100,
        produced_bytes=50,
        final_quality=80,
        rel_original_path=item.relative_path,
        rel_processed_path=item.relative_path.with_suffix(".webp"),
    )


def _index(item: SourceItem) -> int:
    return int(item.path.stem)


@pytest.mark.parametrize("mode", ["window", "chunked"])
def test_every_item_completes_exactly_once(mode: str) -> None:
    items = _items(37)
    completed: list[Path] = []
    lock = threading.Lock()

    def on_complete(item: SourceItem, outcome: TransformOutcome) -> None:
        with lock:
            completed.append(outcome.path)

    run_scheduled(items, _success, concurrency=5, chunk_size=10, mode=mode, on_complete=on_complete)

    assert sorted(completed) == [item.path for item in items]


@pytest.mark.parametrize("mode", ["window", "chunked"])
def test_single_worker_preserves_scheduling_order(mode: str) -> None:
    items = _items(15)
    completed: list[int] = []

    def handler(item: SourceItem) -> TransformOutcome:
        # 越靠前的任务越慢，若存在乱序就会暴露出来。
        time.sleep(0.001 * (15 - _index(item)))
        return _success(item)

    run_scheduled(
        items,
        handler,
        concurrency=1,
        chunk_size=4,
        mode=mode,
        on_complete=lambda item, outcome: completed.append(_index(item)),
    )

    assert completed == list(range(15))


@pytest.mark.parametrize("mode", ["window", "chunked"])
def test_in_flight_work_never_exceeds_concurrency(mode: str) -> None:
    lock = threading.Lock()
    active = 0
    peak = 0

    def handler(item: SourceItem) -> TransformOutcome:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.005)
        with lock:
            active -= 1
        return _success(item)

    run_scheduled(_items(30), handler, concurrency=3, chunk_size=10, mode=mode, on_complete=lambda i, o: None)

    assert 1 <= peak <= 3


def test_chunked_mode_drains_each_chunk_before_next() -> None:
    items = _items(17)
    chunk_size = 5
    events: list[tuple[str, int]] = []
    lock = threading.Lock()

    def handler(item: SourceItem) -> TransformOutcome:
        idx = _index(item)
        with lock:
            events.append(("start", idx))
        time.sleep(0.002 * (idx * 7 % 5))
        return _success(item)

    def on_complete(item: SourceItem, outcome: TransformOutcome) -> None:
        with lock:
            events.append(("end", _index(item)))

    run_scheduled(items, handler, concurrency=4, chunk_size=chunk_size, mode="chunked", on_complete=on_complete)

    position = {event: pos for pos, event in enumerate(events)}
    chunks = [list(range(start, min(start + chunk_size, 17))) for start in range(0, 17, chunk_size)]
    for current, following in zip(chunks, chunks[1:]):
        last_end = max(position[("end", idx)] for idx in current)
        first_start = min(position[("start", idx)] for idx in following)
        assert last_end < first_start


def test_handler_exception_becomes_failed_outcome() -> None:
    items = _items(4)
    outcomes: dict[int, TransformOutcome] = {}

    def handler(item: SourceItem) -> TransformOutcome:
        if _index(item) == 2:
            raise ValueError("boom")
        return _success(item)

    def on_complete(item: SourceItem, outcome: TransformOutcome) -> None:
        outcomes[_index(item)] = outcome

    run_scheduled(items, handler, concurrency=2, chunk_size=10, on_complete=on_complete)

    assert isinstance(outcomes[2], Failed)
    assert "boom" in outcomes[2].error
    assert all(isinstance(outcomes[idx], Succeeded) for idx in (0, 1, 3))


def test_empty_item_list_is_a_no_op() -> None:
    calls: list[SourceItem] = []

    run_scheduled([], _success, concurrency=2, chunk_size=10, mode="chunked", on_complete=lambda i, o: calls.append(i))

    assert calls == []


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        run_scheduled(_items(1), _success, concurrency=1, chunk_size=10, mode="burst", on_complete=lambda i, o: None)


def test_iter_chunks_splits_contiguously() -> None:
    chunks = list(iter_chunks(list(range(25)), 10))

    assert [len(chunk) for chunk in chunks] == [10, 10, 5]
    assert chunks[2] == [20, 21, 22, 23, 24]

    with pytest.raises(ValueError):
        list(iter_chunks([1, 2], 0))
