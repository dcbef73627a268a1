"""日志配置"""

import logging
from typing import Optional, Union

from rich.logging import RichHandler

PACKAGE_LOGGER = "gh_star_classifier"
FILE_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)8s | %(message)s"


def setup_logging(
    level: Union[int, str] = logging.WARNING,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    配置包级 logger

    各模块通过 logging.getLogger(__name__) 获取子 logger，消息向上传递到这里。
    重复调用会先清掉旧的 handler，避免输出重复。
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    if logger.hasHandlers():
        logger.handlers.clear()

    logger.addHandler(RichHandler(rich_tracebacks=True, show_path=False))

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
        logger.addHandler(file_handler)

    return logger
