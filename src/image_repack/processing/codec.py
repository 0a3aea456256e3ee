"""图片编解码适配层：解码、补边缩放、水印合成与压缩编码。"""

from __future__ import annotations

import io
import logging

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from image_repack.core.config import OUTPUT_FORMATS, TransformConfig
from image_repack.core.exceptions import ImageRepackError
from image_repack.utils.colors import resolve_padding_color

LOGGER = logging.getLogger(__name__)

_RESAMPLING = getattr(Image, "Resampling", Image)

WATERMARK_RATIO = 5
WATERMARK_INSET = 10


class DecodeError(ImageRepackError):
    """源图片或水印无法解码。"""


class EncodeError(ImageRepackError):
    """合成后的图片编码失败。"""


def decode_image(data: bytes, label: str = "图片") -> Image.Image:
    """从字节解码图片并执行 EXIF 旋转校正。

    返回值为新的 Image 对象，调用者负责关闭。
    """

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()

            # EXIF Orientation 校正
            img = ImageOps.exif_transpose(img)
            return img.copy()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        LOGGER.debug("无法识别%s: %s", label, exc)
        raise DecodeError(f"无法解码{label}: {exc}") from exc


class ImageCodec:
    """按固定配置渲染与编码图片。

    水印在构造时只解码、缩放一次，之后作为只读数据被所有工作线程共享。
    """

    def __init__(self, config: TransformConfig, logo_bytes: bytes) -> None:
        self.config = config
        self.padding_color = resolve_padding_color(config.padding_color)
        self.image_format = OUTPUT_FORMATS[config.output_format][0]
        self.watermark = self._prepare_watermark(logo_bytes)

    @property
    def watermark_box(self) -> tuple[int, int, int, int]:
        """水印在画布上的区域 (left, top, right, bottom)。"""

        edge = self.config.target_edge_px
        width, height = self.watermark.size
        left = edge - width - WATERMARK_INSET
        top = edge - height - WATERMARK_INSET
        return left, top, left + width, top + height

    def render(self, source_bytes: bytes) -> Image.Image:
        """解码源图片，等比缩放到正方形画布内并补边，再叠加水印。"""

        edge = self.config.target_edge_px
        source = decode_image(source_bytes, "源图片")
        try:
            fitted = ImageOps.contain(source.convert("RGBA"), (edge, edge), _RESAMPLING.LANCZOS)
        finally:
            source.close()

        canvas = Image.new("RGBA", (edge, edge), self.padding_color)
        offset = ((edge - fitted.width) // 2, (edge - fitted.height) // 2)
        canvas.alpha_composite(fitted, dest=offset)
        fitted.close()

        left, top, _, _ = self.watermark_box
        canvas.alpha_composite(self.watermark, dest=(left, top))

        if self.padding_color[3] == 255:
            rgb = canvas.convert("RGB")
            canvas.close()
            return rgb
        return canvas

    def encode(self, image: Image.Image, quality: int) -> bytes:
        """以指定质量编码为目标格式。"""

        to_save = image
        params: dict[str, object] = {"quality": quality}
        if self.image_format == "WEBP":
            params["method"] = 4
        else:
            params["optimize"] = True
            if image.mode != "RGB":
                to_save = image.convert("RGB")

        buffer = io.BytesIO()
        try:
            to_save.save(buffer, format=self.image_format, **params)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"编码 {self.image_format} 失败 (quality={quality}): {exc}") from exc
        finally:
            if to_save is not image:
                to_save.close()
        return buffer.getvalue()

    def _prepare_watermark(self, logo_bytes: bytes) -> Image.Image:
        """缩放水印使其长边为画布边长的 1/5，并按透明度整体衰减 Alpha 通道。"""

        logo_edge = self.config.target_edge_px // WATERMARK_RATIO
        logo = decode_image(logo_bytes, "水印图片")
        try:
            scaled = ImageOps.contain(logo.convert("RGBA"), (logo_edge, logo_edge), _RESAMPLING.LANCZOS)
        finally:
            logo.close()

        alpha = np.asarray(scaled.getchannel("A"), dtype=np.float32) * self.config.watermark_opacity
        scaled.putalpha(Image.fromarray(np.clip(np.rint(alpha), 0, 255).astype(np.uint8)))
        return scaled
