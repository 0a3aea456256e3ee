"""文件扫描与筛选逻辑。"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from image_repack.core.models import SourceItem

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}


@dataclass(slots=True)
class ScanResult:
    """扫描结果：图片列表与原始字节总数。"""

    items: list[SourceItem]
    total_bytes: int

    def __len__(self) -> int:
        return len(self.items)


def _iter_candidate_files(root: Path) -> Iterator[Path]:
    """递归遍历目录下的所有文件。"""

    for candidate in root.rglob("*"):
        if candidate.is_file():
            yield candidate


def scan_source_items(root: Path) -> ScanResult:
    """扫描目录，返回所有支持扩展名的图片，按路径排序以保证顺序稳定。"""

    resolved_root = root.resolve()
    collected: list[SourceItem] = []
    total_bytes = 0

    for candidate in _iter_candidate_files(resolved_root):
        if candidate.suffix.lower() not in IMAGE_EXTENSIONS:
            continue

        size = candidate.stat().st_size
        collected.append(
            SourceItem(
                path=candidate,
                size_bytes=size,
                name=candidate.name,
                relative_path=candidate.relative_to(resolved_root),
            )
        )
        total_bytes += size

    collected.sort(key=lambda x: str(x.path).lower())
    return ScanResult(items=collected, total_bytes=total_bytes)
