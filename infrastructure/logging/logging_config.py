"""日志配置"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

from infrastructure.config.settings import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def configure_logging(settings: Settings) -> None:
    """
    配置根日志记录器

    - 日志级别来自 settings.log_level，debug 模式下强制为 DEBUG
    - 总是输出到控制台
    - settings.log_file 非空时同时写入滚动日志文件（目录按需创建）
    """
    level = logging.DEBUG if settings.debug else settings.log_level.upper()

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_path,
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        )

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # httpx 每个请求都会记录 INFO 日志
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
