"""ZIP 压缩包的解压与打包。"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

from image_repack.core.exceptions import SetupError

LOGGER = logging.getLogger(__name__)

COMPRESS_LEVEL = 9


def extract_archive(archive_path: Path, dest_dir: Path) -> Path:
    """将 ZIP 解压到目标目录，拒绝越出目标目录的成员路径。"""

    dest_root = dest_dir.resolve()
    try:
        dest_root.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive_path) as archive:
            for member in archive.infolist():
                target = (dest_root / member.filename).resolve()
                if target != dest_root and dest_root not in target.parents:
                    raise SetupError(f"压缩包成员路径非法: {member.filename}")
            archive.extractall(dest_root)
    except (OSError, zipfile.BadZipFile) as exc:
        raise SetupError(f"解压失败: {archive_path}: {exc}") from exc

    LOGGER.info("压缩包已解压到: %s", dest_root)
    return dest_root


def create_archive(source_dir: Path, archive_path: Path) -> int:
    """将目录内容打包为 ZIP（路径相对于 source_dir），返回压缩包字节数。"""

    source_root = source_dir.resolve()
    try:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(
            archive_path,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=COMPRESS_LEVEL,
        ) as archive:
            for path in sorted(source_root.rglob("*")):
                if path.is_file():
                    archive.write(path, path.relative_to(source_root).as_posix())
        size = archive_path.stat().st_size
    except OSError as exc:
        raise SetupError(f"创建压缩包失败: {archive_path}: {exc}") from exc

    LOGGER.info("输出压缩包已生成: %s (%d bytes)", archive_path, size)
    return size
