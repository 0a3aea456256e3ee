"""配置校验、颜色解析与映射表导出。"""

from __future__ import annotations

import csv
from dataclasses import replace
from pathlib import Path

import pytest

from image_repack.core.config import (
    OutputConfig,
    RunConfig,
    ScheduleConfig,
    TransformConfig,
    validate_run_config,
)
from image_repack.core.exceptions import ValidationError
from image_repack.core.models import MappingRecord
from image_repack.core.report import HEADER, format_bytes, format_duration, write_mapping_csv
from image_repack.utils.colors import resolve_padding_color


def _valid_config(tmp_path: Path, **overrides) -> RunConfig:
    input_dir = tmp_path / "input"
    input_dir.mkdir(exist_ok=True)
    logo = tmp_path / "logo.png"
    logo.write_bytes(b"placeholder")
    config = RunConfig(
        input_dir=input_dir,
        logo_path=logo,
        output=OutputConfig(output_dir=tmp_path / "output"),
    )
    return replace(config, **overrides)


def test_defaults_are_valid(tmp_path: Path) -> None:
    config = _valid_config(tmp_path)

    validate_run_config(config)

    assert config.transform.max_output_bytes == 150 * 1024
    assert config.transform.output_suffix == ".webp"


@pytest.mark.parametrize(
    "transform",
    [
        TransformConfig(target_edge_px=99),
        TransformConfig(target_edge_px=4001),
        TransformConfig(initial_quality=0),
        TransformConfig(initial_quality=101),
        TransformConfig(max_output_kb=9),
        TransformConfig(max_output_kb=5001),
        TransformConfig(watermark_opacity=-0.1),
        TransformConfig(watermark_opacity=1.5),
        TransformConfig(padding_color="chartreuse-ish"),
        TransformConfig(output_format="gif"),
    ],
)
def test_out_of_range_transform_options_are_rejected(tmp_path: Path, transform: TransformConfig) -> None:
    with pytest.raises(ValidationError):
        validate_run_config(_valid_config(tmp_path, transform=transform))


@pytest.mark.parametrize(
    "schedule",
    [
        ScheduleConfig(concurrency=0),
        ScheduleConfig(concurrency=21),
        ScheduleConfig(chunk_size=9),
        ScheduleConfig(chunk_size=1001),
        ScheduleConfig(mode="burst"),
    ],
)
def test_out_of_range_schedule_options_are_rejected(tmp_path: Path, schedule: ScheduleConfig) -> None:
    with pytest.raises(ValidationError):
        validate_run_config(_valid_config(tmp_path, schedule=schedule))


def test_missing_input_and_logo_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        validate_run_config(_valid_config(tmp_path, input_dir=tmp_path / "missing"))
    with pytest.raises(ValidationError):
        validate_run_config(_valid_config(tmp_path, logo_path=tmp_path / "missing.png"))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("white", (255, 255, 255, 255)),
        ("Black", (0, 0, 0, 255)),
        ("grey", (128, 128, 128, 255)),
        ("transparent", (255, 255, 255, 0)),
        ("#f00", (255, 0, 0, 255)),
        ("00ff00", (0, 255, 0, 255)),
        ("#0000ff80", (0, 0, 255, 128)),
    ],
)
def test_resolve_padding_color(value: str, expected: tuple[int, int, int, int]) -> None:
    assert resolve_padding_color(value) == expected


@pytest.mark.parametrize("value", ["", "   ", "#12", "purple-ish", "#gggggg"])
def test_resolve_padding_color_rejects_garbage(value: str) -> None:
    with pytest.raises(ValidationError):
        resolve_padding_color(value)


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 Bytes"),
        (1023, "1023 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (150 * 1024, "150 KB"),
        (1024**2, "1 MB"),
        (3 * 1024**3, "3 GB"),
    ],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert format_bytes(size) == expected


def test_format_duration() -> None:
    assert format_duration(5.4) == "5s"
    assert format_duration(125) == "2m 5s"
    assert format_duration(3725) == "1h 2m 5s"


def test_write_mapping_csv(tmp_path: Path) -> None:
    records = [
        MappingRecord(
            original_rel_path=Path("nested/a.png"),
            processed_rel_path=Path("nested/a.webp"),
            original_size=2048,
            processed_size=512,
            compression_pct=75.0,
            final_quality=70,
        )
    ]

    path = write_mapping_csv(records, tmp_path / "reports" / "mapping.csv")

    with path.open("r", encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == HEADER
    assert rows[1] == ["nested/a.png", "nested/a.webp", "2 KB", "512 Bytes", "75.0%", "70"]
