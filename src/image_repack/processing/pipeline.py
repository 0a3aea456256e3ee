"""处理流水线：校验、扫描、受限并发执行变换、汇总统计与映射表。"""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Callable, Optional

from image_repack.core.config import RunConfig, validate_run_config
from image_repack.core.exceptions import SetupError, ValidationError
from image_repack.core.models import Failed, RunSummary, Skipped, SourceItem, Succeeded, TransformOutcome
from image_repack.core.output_manager import OutputManager
from image_repack.core.progress import ProgressUpdate
from image_repack.core.report import format_bytes, write_mapping_csv
from image_repack.core.scanner import scan_source_items
from image_repack.core.stats import RunAggregator
from image_repack.processing.codec import DecodeError, ImageCodec
from image_repack.processing.scheduler import run_scheduled
from image_repack.processing.worker import TransformContext, run_transform

LOGGER = logging.getLogger(__name__)


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


def process_batch(config: RunConfig, progress_callback: ProgressCallback = None) -> RunSummary:
    """批量处理入口：校验配置、扫描输入目录、并发执行变换并汇总结果。"""

    validate_run_config(config)
    codec = _build_codec(config)
    output_manager = OutputManager(config.output.output_dir, config.transform.output_suffix)

    _log_configuration(config)

    LOGGER.info("开始扫描输入目录：%s", config.input_dir)
    try:
        scan = scan_source_items(config.input_dir)
    except OSError as exc:
        raise SetupError(f"扫描输入目录失败: {config.input_dir}") from exc
    total = len(scan.items)
    LOGGER.info("发现 %d 个图片文件（%s）", total, format_bytes(scan.total_bytes))

    aggregator = RunAggregator(total)

    if total == 0:
        LOGGER.warning("输入目录中没有图片文件")
        _emit_progress(progress_callback, completed=0, total=0, message="没有需要处理的图片", status="done")
        return RunSummary(snapshot=aggregator.snapshot(), scanned_bytes=0)

    context = TransformContext(
        codec=codec,
        output=output_manager,
        config=config.transform,
        skip_existing=config.output.skip_existing,
    )

    def on_complete(item: SourceItem, outcome: TransformOutcome) -> None:
        completed = aggregator.ingest(outcome)
        kind = _outcome_kind(outcome)
        _emit_progress(progress_callback, completed, total, f"{kind} {item.name}", outcome=kind)

    _emit_progress(progress_callback, 0, total, "开始执行处理任务")
    run_scheduled(
        scan.items,
        partial(run_transform, context=context),
        concurrency=config.schedule.concurrency,
        chunk_size=config.schedule.chunk_size,
        mode=config.schedule.mode,
        on_complete=on_complete,
    )

    snapshot = aggregator.snapshot()
    summary = RunSummary(
        snapshot=snapshot,
        mapping=aggregator.mapping,
        outcomes=aggregator.outcomes,
        scanned_bytes=scan.total_bytes,
    )

    if config.mapping_csv is not None and summary.mapping:
        summary.mapping_path = _write_mapping(summary, config)

    LOGGER.info(
        "处理完成：成功 %d，跳过 %d，失败 %d，共 %d；%s -> %s，压缩率 %.1f%%，耗时 %.2fs",
        snapshot.processed,
        snapshot.skipped,
        snapshot.errors,
        snapshot.total,
        format_bytes(snapshot.total_input_bytes),
        format_bytes(snapshot.total_output_bytes),
        snapshot.compression_ratio * 100,
        snapshot.elapsed_seconds,
    )
    _emit_progress(progress_callback, total, total, "处理完成", status="done")
    return summary


def _build_codec(config: RunConfig) -> ImageCodec:
    """读取并预处理水印；水印不可用属于任务开始前的致命错误。"""

    try:
        logo_bytes = config.logo_path.read_bytes()
    except OSError as exc:
        raise ValidationError(f"无法读取水印文件: {config.logo_path}") from exc

    try:
        return ImageCodec(config.transform, logo_bytes)
    except DecodeError as exc:
        raise ValidationError(f"水印文件必须是 PNG、JPEG 或 WebP 图片: {config.logo_path}") from exc


def _log_configuration(config: RunConfig) -> None:
    transform = config.transform
    schedule = config.schedule
    LOGGER.info(
        "任务配置：input=%s output=%s logo=%s edge=%dpx quality=%d max=%dKB opacity=%.2f "
        "padding=%s format=%s concurrency=%d chunk=%d mode=%s skip_existing=%s",
        config.input_dir,
        config.output.output_dir,
        config.logo_path,
        transform.target_edge_px,
        transform.initial_quality,
        transform.max_output_kb,
        transform.watermark_opacity,
        transform.padding_color,
        transform.output_format,
        schedule.concurrency,
        schedule.chunk_size,
        schedule.mode,
        config.output.skip_existing,
    )


def _outcome_kind(outcome: TransformOutcome) -> str:
    if isinstance(outcome, Succeeded):
        return "succeeded"
    if isinstance(outcome, Skipped):
        return "skipped"
    assert isinstance(outcome, Failed)
    return "failed"


def _emit_progress(
    callback: ProgressCallback,
    completed: int,
    total: int,
    message: Optional[str] = None,
    *,
    status: str = "running",
    outcome: Optional[str] = None,
) -> None:
    if not callback:
        return
    callback(ProgressUpdate(total=total, completed=completed, message=message, status=status, outcome=outcome))


def _write_mapping(summary: RunSummary, config: RunConfig) -> Optional[Path]:
    assert config.mapping_csv is not None
    try:
        path = write_mapping_csv(summary.mapping, config.mapping_csv)
    except OSError as exc:
        LOGGER.error("写入映射表失败：%s", exc)
        return None
    LOGGER.info("映射表已写入：%s", path)
    return path
