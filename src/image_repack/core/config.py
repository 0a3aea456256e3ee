"""处理任务的配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from image_repack.core.exceptions import ValidationError
from image_repack.utils.colors import resolve_padding_color

ScheduleMode = str  # window | chunked

OUTPUT_FORMATS = {
    "webp": ("WEBP", ".webp"),
    "jpeg": ("JPEG", ".jpg"),
}
SCHEDULE_MODES = {"window", "chunked"}

EDGE_RANGE = (100, 4000)
QUALITY_RANGE = (1, 100)
CONCURRENCY_RANGE = (1, 20)
CHUNK_SIZE_RANGE = (10, 1000)
MAX_OUTPUT_KB_RANGE = (10, 5000)


@dataclass(slots=True, frozen=True)
class TransformConfig:
    """单张图片的变换参数，整个任务期间只读共享。"""

    target_edge_px: int = 1200
    initial_quality: int = 80
    max_output_kb: int = 150
    watermark_opacity: float = 0.6
    padding_color: str = "white"
    output_format: str = "webp"

    @property
    def max_output_bytes(self) -> int:
        return self.max_output_kb * 1024

    @property
    def output_suffix(self) -> str:
        return OUTPUT_FORMATS[self.output_format][1]


@dataclass(slots=True)
class ScheduleConfig:
    """并发与分块调度配置。"""

    concurrency: int = 4
    chunk_size: int = 100
    mode: ScheduleMode = "window"


@dataclass(slots=True)
class OutputConfig:
    """输出目录与跳过策略配置。"""

    output_dir: Path
    skip_existing: bool = False


@dataclass(slots=True)
class RunConfig:
    """单次批处理任务的配置集合。"""

    input_dir: Path
    logo_path: Path
    output: OutputConfig
    transform: TransformConfig = field(default_factory=TransformConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    mapping_csv: Optional[Path] = None


def validate_run_config(config: RunConfig) -> None:
    """校验配置取值范围，不合法时抛出 ValidationError。"""

    transform = config.transform
    schedule = config.schedule

    _check_range("目标边长", transform.target_edge_px, EDGE_RANGE, unit="px")
    _check_range("初始质量", transform.initial_quality, QUALITY_RANGE)
    _check_range("并发数量", schedule.concurrency, CONCURRENCY_RANGE)
    _check_range("分块大小", schedule.chunk_size, CHUNK_SIZE_RANGE)
    _check_range("最大输出大小", transform.max_output_kb, MAX_OUTPUT_KB_RANGE, unit="KB")

    if not 0.0 <= transform.watermark_opacity <= 1.0:
        raise ValidationError(f"水印透明度必须在 0~1 之间: {transform.watermark_opacity}")

    if transform.output_format not in OUTPUT_FORMATS:
        raise ValidationError(f"不支持的输出格式: {transform.output_format}")

    if schedule.mode not in SCHEDULE_MODES:
        raise ValidationError(f"未知的调度模式: {schedule.mode}")

    # 颜色名称在此处提前解析一次，错误直接以 ValidationError 抛出。
    resolve_padding_color(transform.padding_color)

    if not config.input_dir.is_dir():
        raise ValidationError(f"输入目录不存在: {config.input_dir}")
    if not config.logo_path.is_file():
        raise ValidationError(f"水印文件不存在: {config.logo_path}")


def _check_range(label: str, value: int, bounds: tuple[int, int], *, unit: str = "") -> None:
    low, high = bounds
    if not low <= value <= high:
        raise ValidationError(f"{label}必须在 {low}-{high}{unit} 之间: {value}")
