"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union


@dataclass(slots=True, frozen=True)
class SourceItem:
    """扫描阶段得到的源图片信息。"""

    path: Path
    size_bytes: int
    name: str
    relative_path: Path


@dataclass(slots=True, frozen=True)
class Skipped:
    """目标已存在且开启跳过策略时的结果。"""

    path: Path
    reason: str


@dataclass(slots=True, frozen=True)
class Succeeded:
    """成功写出压缩图片的结果。"""

    path: Path
    original_bytes: int
    produced_bytes: int
    final_quality: int
    rel_original_path: Path
    rel_processed_path: Path
    attempts: int = 1


@dataclass(slots=True, frozen=True)
class Failed:
    """单张图片处理失败的结果，不影响其他图片。"""

    path: Path
    error: str


TransformOutcome = Union[Skipped, Succeeded, Failed]


@dataclass(slots=True, frozen=True)
class MappingRecord:
    """原图与处理结果之间的对应记录。"""

    original_rel_path: Path
    processed_rel_path: Path
    original_size: int
    processed_size: int
    compression_pct: float
    final_quality: int

    @classmethod
    def from_outcome(cls, outcome: Succeeded) -> "MappingRecord":
        if outcome.original_bytes > 0:
            compression = (1 - outcome.produced_bytes / outcome.original_bytes) * 100
        else:
            compression = 0.0
        return cls(
            original_rel_path=outcome.rel_original_path,
            processed_rel_path=outcome.rel_processed_path,
            original_size=outcome.original_bytes,
            processed_size=outcome.produced_bytes,
            compression_pct=compression,
            final_quality=outcome.final_quality,
        )


@dataclass(slots=True, frozen=True)
class RunSnapshot:
    """任务结束时的统计快照。"""

    total: int
    processed: int
    skipped: int
    errors: int
    total_input_bytes: int
    total_output_bytes: int
    elapsed_seconds: float

    @property
    def compression_ratio(self) -> float:
        if self.total_input_bytes <= 0:
            return 0.0
        return (self.total_input_bytes - self.total_output_bytes) / self.total_input_bytes

    @property
    def throughput(self) -> float:
        """每秒成功处理的图片数量。"""

        if self.elapsed_seconds <= 0:
            return 0.0
        return self.processed / self.elapsed_seconds


@dataclass(slots=True)
class RunSummary:
    """批处理的最终产出。"""

    snapshot: RunSnapshot
    mapping: list[MappingRecord] = field(default_factory=list)
    outcomes: list[TransformOutcome] = field(default_factory=list)
    scanned_bytes: int = 0
    mapping_path: Optional[Path] = None

    @property
    def succeeded(self) -> list[Succeeded]:
        return [o for o in self.outcomes if isinstance(o, Succeeded)]

    @property
    def skipped(self) -> list[Skipped]:
        return [o for o in self.outcomes if isinstance(o, Skipped)]

    @property
    def failed(self) -> list[Failed]:
        return [o for o in self.outcomes if isinstance(o, Failed)]
