"""日志工具。"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from image_repack.core.exceptions import SetupError

LOG_FORMAT = "%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def setup_logging(level: int = logging.INFO, log_dir: Optional[Path] = None) -> None:
    """初始化项目日志配置；指定 log_dir 时额外写入滚动日志文件。"""

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            combined = RotatingFileHandler(
                log_dir / "combined.log", maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
            )
            errors = RotatingFileHandler(
                log_dir / "error.log", maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
            )
        except OSError as exc:
            raise SetupError(f"无法创建日志目录 {log_dir}: {exc}") from exc
        errors.setLevel(logging.ERROR)
        handlers.extend([combined, errors])

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
