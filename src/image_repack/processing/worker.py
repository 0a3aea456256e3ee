"""单张图片的处理单元：渲染一次，逐步降低质量直到满足大小限制。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from PIL import Image

from image_repack.core.config import TransformConfig
from image_repack.core.models import Failed, Skipped, SourceItem, Succeeded, TransformOutcome
from image_repack.core.output_manager import FileSystemError, OutputManager, read_source_bytes
from image_repack.processing.codec import DecodeError, EncodeError

LOGGER = logging.getLogger(__name__)

QUALITY_FLOOR = 10
QUALITY_STEP = 10


class Codec(Protocol):
    def render(self, source_bytes: bytes) -> Image.Image: ...

    def encode(self, image: Image.Image, quality: int) -> bytes: ...


@dataclass(slots=True, frozen=True)
class ShrinkResult:
    """质量递减循环的结果。"""

    data: bytes
    quality: int
    attempts: int


@dataclass(slots=True)
class TransformContext:
    """整个任务共享的只读处理上下文。"""

    codec: Codec
    output: OutputManager
    config: TransformConfig
    skip_existing: bool = False


def shrink_to_budget(codec: Codec, image: Image.Image, initial_quality: int, max_bytes: int) -> ShrinkResult:
    """以初始质量编码，超出 max_bytes 时每次降低 10 重新编码，最低到 10。

    到达质量下限后不论大小都接受结果。
    """

    quality = initial_quality
    data = codec.encode(image, quality)
    attempts = 1
    while len(data) > max_bytes and quality > QUALITY_FLOOR:
        quality = max(QUALITY_FLOOR, quality - QUALITY_STEP)
        data = codec.encode(image, quality)
        attempts += 1
    return ShrinkResult(data=data, quality=quality, attempts=attempts)


def run_transform(item: SourceItem, context: TransformContext) -> TransformOutcome:
    """执行单张图片的完整处理流程，任何失败都转换为 Failed 结果。"""

    destination = context.output.destination_for(item)
    if context.skip_existing and destination.exists():
        LOGGER.info("跳过输出（已存在）：%s", destination)
        return Skipped(path=item.path, reason=f"目标已存在: {destination.name}")

    composited: Optional[Image.Image] = None
    try:
        source_bytes = read_source_bytes(item)
        composited = context.codec.render(source_bytes)
        result = shrink_to_budget(
            context.codec,
            composited,
            context.config.initial_quality,
            context.config.max_output_bytes,
        )
        context.output.write_bytes(destination, result.data)
    except (DecodeError, EncodeError, FileSystemError) as exc:
        LOGGER.error("处理失败 %s: %s", item.path, exc)
        return Failed(path=item.path, error=str(exc))
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("处理时出现未预期的异常：%s", item.path)
        return Failed(path=item.path, error=f"{type(exc).__name__}: {exc}")
    finally:
        if composited is not None:
            composited.close()

    if len(result.data) > context.config.max_output_bytes:
        LOGGER.warning(
            "已降到最低质量仍超出大小限制：%s (%d bytes)", item.path, len(result.data)
        )

    return Succeeded(
        path=item.path,
        original_bytes=len(source_bytes),
        produced_bytes=len(result.data),
        final_quality=result.quality,
        rel_original_path=item.relative_path,
        rel_processed_path=context.output.relative_to_output(destination),
        attempts=result.attempts,
    )
