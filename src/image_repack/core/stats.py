"""运行统计的汇总点。

多个工作线程会同时完成任务，所有计数都通过 ``RunAggregator.ingest`` 在同一把锁下
累加，保证 ``processed + skipped + errors`` 与已完成数量一致。
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from image_repack.core.models import (
    Failed,
    MappingRecord,
    RunSnapshot,
    Skipped,
    Succeeded,
    TransformOutcome,
)

Clock = Callable[[], float]


@dataclass(slots=True)
class RunStats:
    """可变的累加器，只由 RunAggregator 持有。"""

    total: int
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    total_input_bytes: int = 0
    total_output_bytes: int = 0
    started_at: float = field(default_factory=time.monotonic)

    @property
    def completed(self) -> int:
        return self.processed + self.skipped + self.errors


class RunAggregator:
    """接收每个图片的处理结果，更新统计并生成映射记录。"""

    def __init__(self, total: int, *, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._stats = RunStats(total=total, started_at=clock())
        self._mapping: list[MappingRecord] = []
        self._outcomes: list[TransformOutcome] = []

    def ingest(self, outcome: TransformOutcome) -> int:
        """登记一个终态结果，返回当前已完成的数量。"""

        with self._lock:
            stats = self._stats
            if isinstance(outcome, Succeeded):
                stats.processed += 1
                stats.total_input_bytes += outcome.original_bytes
                stats.total_output_bytes += outcome.produced_bytes
                self._mapping.append(MappingRecord.from_outcome(outcome))
            elif isinstance(outcome, Skipped):
                stats.skipped += 1
            elif isinstance(outcome, Failed):
                stats.errors += 1
            else:
                raise TypeError(f"未知的结果类型: {type(outcome).__name__}")
            self._outcomes.append(outcome)
            return stats.completed

    @property
    def mapping(self) -> list[MappingRecord]:
        with self._lock:
            return list(self._mapping)

    @property
    def outcomes(self) -> list[TransformOutcome]:
        with self._lock:
            return list(self._outcomes)

    def snapshot(self) -> RunSnapshot:
        """返回不可变的统计快照。"""

        with self._lock:
            stats = self._stats
            return RunSnapshot(
                total=stats.total,
                processed=stats.processed,
                skipped=stats.skipped,
                errors=stats.errors,
                total_input_bytes=stats.total_input_bytes,
                total_output_bytes=stats.total_output_bytes,
                elapsed_seconds=max(self._clock() - stats.started_at, 0.0),
            )
