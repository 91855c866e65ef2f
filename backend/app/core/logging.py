# 日志：stdout + 统一格式；业务日志写成 "event.name key=value ..." 方便 grep

import logging
import os
import sys
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# 第三方库的 DEBUG/INFO 太吵（连接池、重试），默认压到 WARNING
NOISY_LOGGERS = ("urllib3", "sqlalchemy.engine", "httpx")


def _quiet(names: Iterable[str]) -> None:
    for name in names:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    给 root logger 挂 stdout handler。
    uvicorn 在 import app 之前已经配好 handler，这里只调级别；脚本和测试里才真正 basicConfig。
    """
    resolved_level = (level or DEFAULT_LEVEL).upper()
    root_logger = logging.getLogger()

    if root_logger.handlers:
        root_logger.setLevel(resolved_level)
    else:
        logging.basicConfig(
            level=resolved_level,
            format=LOG_FORMAT,
            handlers=[logging.StreamHandler(sys.stdout)],
        )

    if resolved_level != "DEBUG":
        _quiet(NOISY_LOGGERS)
    logging.captureWarnings(True)
    return logging.getLogger("listing")
