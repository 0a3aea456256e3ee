"""映射表导出与格式化工具。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from image_repack.core.models import MappingRecord

HEADER = ["Original Path", "Processed Path", "Original Size", "Processed Size", "Compression", "Quality"]

_UNITS = ["Bytes", "KB", "MB", "GB"]


def write_mapping_csv(records: Iterable[MappingRecord], report_path: Path) -> Path:
    """将原图与处理结果的映射写入 CSV。"""

    report_path.parent.mkdir(parents=True, exist_ok=True)
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in records:
            writer.writerow(
                [
                    record.original_rel_path.as_posix(),
                    record.processed_rel_path.as_posix(),
                    format_bytes(record.original_size),
                    format_bytes(record.processed_size),
                    f"{record.compression_pct:.1f}%",
                    record.final_quality,
                ]
            )
    return report_path


def format_bytes(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_UNITS[unit]}"


def format_duration(seconds: float) -> str:
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
