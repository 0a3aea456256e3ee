"""输出路径计算与文件写入模块。"""

from __future__ import annotations

import logging
from pathlib import Path

from image_repack.core.exceptions import ImageRepackError, SetupError
from image_repack.core.models import SourceItem

LOGGER = logging.getLogger(__name__)


class FileSystemError(ImageRepackError):
    """单张图片的读写失败。"""


class OutputManager:
    """负责输出目录、目标路径镜像与字节写入。"""

    def __init__(self, output_dir: Path, suffix: str) -> None:
        self.output_dir = output_dir.resolve()
        self.suffix = suffix
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SetupError(f"无法创建输出目录: {self.output_dir}") from exc

    def destination_for(self, item: SourceItem) -> Path:
        """镜像源图片的相对路径，并替换为输出格式的扩展名。"""

        return self.output_dir / item.relative_path.with_suffix(self.suffix)

    def relative_to_output(self, destination: Path) -> Path:
        return destination.relative_to(self.output_dir)

    def write_bytes(self, destination: Path, data: bytes) -> None:
        """写入编码后的字节，必要时创建父目录。"""

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(data)
        except OSError as exc:
            raise FileSystemError(f"写入文件失败: {destination}") from exc


def read_source_bytes(item: SourceItem) -> bytes:
    """读取源图片的全部字节。"""

    try:
        return item.path.read_bytes()
    except OSError as exc:
        LOGGER.debug("读取源文件失败 %s: %s", item.path, exc)
        raise FileSystemError(f"读取文件失败: {item.path}") from exc
