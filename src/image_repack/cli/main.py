"""命令行入口。"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from image_repack.core.archive import create_archive, extract_archive
from image_repack.core.config import OutputConfig, RunConfig, ScheduleConfig, TransformConfig
from image_repack.core.exceptions import ImageRepackError, SetupError
from image_repack.core.models import RunSummary
from image_repack.core.progress import ProgressUpdate
from image_repack.core.report import format_bytes, format_duration
from image_repack.processing.pipeline import process_batch
from image_repack.utils.logging import setup_logging

app = typer.Typer(help="批量为压缩包内的图片添加水印、统一尺寸并压缩为 WebP。")

LOGGER = logging.getLogger(__name__)


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("处理图片", total=update.total)
        progress.update(task_id, completed=update.completed)
        if update.outcome == "failed" and update.message:
            progress.log(f"[red]{update.message}")

    return callback


def _render_summary(console: Console, summary: RunSummary, archive_size: Optional[int]) -> None:
    snapshot = summary.snapshot

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()
    table.add_row("成功", f"[green]{snapshot.processed}")
    table.add_row("跳过", f"[yellow]{snapshot.skipped}")
    table.add_row("失败", f"[red]{snapshot.errors}")
    table.add_row("总数", str(snapshot.total))
    table.add_row("扫描总大小", format_bytes(summary.scanned_bytes))
    table.add_row("原始大小", format_bytes(snapshot.total_input_bytes))
    table.add_row("处理后大小", format_bytes(snapshot.total_output_bytes))
    table.add_row("压缩率", f"{snapshot.compression_ratio * 100:.1f}%")
    table.add_row("耗时", format_duration(snapshot.elapsed_seconds))
    table.add_row("速度", f"{snapshot.throughput:.1f} 张/秒")
    if archive_size is not None:
        table.add_row("压缩包大小", format_bytes(archive_size))

    console.print(Panel(table, title="处理汇总", border_style="green"))


@app.command("run")
def run_cli(  # noqa: PLR0913
    input_path: Path = typer.Option(..., "--input", "-i", help="输入 ZIP 文件（也可直接传入目录）"),
    output: Path = typer.Option(..., "--output", "-o", help="输出 ZIP 文件"),
    logo: Path = typer.Option(..., "--logo", "-l", help="水印图片（PNG/JPEG/WebP）"),
    resize: int = typer.Option(1200, "--resize", "-r", help="输出正方形边长 (px)"),
    quality: int = typer.Option(80, "--quality", "-q", help="初始编码质量 1-100"),
    csv_path: Optional[Path] = typer.Option(None, "--csv", help="映射表 CSV 输出路径"),
    keep_temp: bool = typer.Option(False, "--keep-temp", help="保留临时工作目录"),
    work_dir: Optional[Path] = typer.Option(None, "--work-dir", help="临时工作目录的父目录"),
    concurrent: int = typer.Option(4, "--concurrent", "-c", help="并发数量 1-20"),
    chunk_size: int = typer.Option(100, "--chunk-size", help="分块大小 10-1000（chunked 模式）"),
    schedule: str = typer.Option("window", "--schedule", help="调度模式 window 或 chunked"),
    max_size: int = typer.Option(150, "--max-size", help="单张输出最大大小 (KB)"),
    watermark_opacity: float = typer.Option(0.6, "--watermark-opacity", help="水印透明度 0-1"),
    padding_color: str = typer.Option("white", "--padding-color", help="补边颜色：名称或 HEX"),
    skip_existing: bool = typer.Option(False, "--skip-existing", help="跳过 --output-dir 中已存在的结果文件"),
    output_format: str = typer.Option("webp", "--format", help="输出格式 webp 或 jpeg"),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", help="持久化的处理结果目录；配合 --skip-existing 可在多次运行间复用"
    ),
    log_dir: Optional[Path] = typer.Option(Path("logs"), "--log-dir", help="日志文件目录"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """执行批量处理。"""

    console = Console()
    try:
        setup_logging(logging.DEBUG if verbose else logging.INFO, log_dir=log_dir)
    except SetupError as exc:
        console.print(f"[red]准备失败：{exc}")
        raise typer.Exit(code=1) from exc

    if skip_existing and output_dir is None:
        console.print("[red]校验失败：--skip-existing 需要配合 --output-dir 使用")
        raise typer.Exit(code=1)

    input_path = input_path.expanduser()
    work_root: Optional[Path] = None

    try:
        try:
            work_root = Path(tempfile.mkdtemp(prefix="image-repack-", dir=work_dir))
        except OSError as exc:
            raise SetupError(f"无法创建临时工作目录 {work_dir}: {exc}") from exc
        temp_input = work_root / "input"
        result_dir = output_dir.expanduser().resolve() if output_dir else work_root / "output"

        if input_path.is_dir():
            source_dir = input_path.resolve()
        elif input_path.is_file():
            source_dir = extract_archive(input_path, temp_input)
        else:
            console.print(f"[red]输入文件不存在: {input_path}")
            raise typer.Exit(code=1)

        job = RunConfig(
            input_dir=source_dir,
            logo_path=logo.expanduser().resolve(),
            output=OutputConfig(output_dir=result_dir, skip_existing=skip_existing),
            transform=TransformConfig(
                target_edge_px=resize,
                initial_quality=quality,
                max_output_kb=max_size,
                watermark_opacity=watermark_opacity,
                padding_color=padding_color,
                output_format=output_format.lower(),
            ),
            schedule=ScheduleConfig(concurrency=concurrent, chunk_size=chunk_size, mode=schedule),
            mapping_csv=csv_path.expanduser().resolve() if csv_path else None,
        )

        progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            console=console,
        )
        with progress:
            summary = process_batch(job, progress_callback=_build_progress_callback(progress))

        if summary.snapshot.total == 0:
            console.print("[yellow]压缩包中没有找到图片文件")
            return

        archive_size = create_archive(result_dir, output.expanduser().resolve())
        _render_summary(console, summary, archive_size)
        console.print(f"输出文件：{output}")
        if summary.mapping_path:
            console.print(f"映射表：{summary.mapping_path}")
    except ImageRepackError as exc:
        kind = "准备失败" if isinstance(exc, SetupError) else "校验失败"
        LOGGER.error("%s：%s", kind, exc)
        console.print(f"[red]{kind}：{exc}")
        raise typer.Exit(code=1) from exc
    finally:
        if work_root is not None and keep_temp:
            console.print(f"临时目录已保留：{work_root}")
        elif work_root is not None:
            shutil.rmtree(work_root, ignore_errors=True)


if __name__ == "__main__":
    app()
