"""
日志模块。

提供应用程序日志的配置和管理功能。

引擎各组件通过构造参数接收 Logger，本模块只负责在进程入口处完成配置。
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "pvm"
LOG_FILE_NAME = "pvm.log"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(module)s - %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5


def setup_logger(
    level: int = logging.WARNING,
    log_to_file: bool = True,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
    max_bytes: int = MAX_BYTES,
    backup_count: int = BACKUP_COUNT,
) -> logging.Logger:
    """
    配置并初始化日志记录器。

    文件日志始终记录 DEBUG 及以上级别，控制台日志使用 level 指定的级别。
    重复调用会替换已有的处理器。

    参数:
        level: 控制台日志级别，默认为 WARNING
        log_to_file: 是否输出到文件，默认为 True
        log_to_console: 是否输出到控制台，默认为 True
        log_dir: 日志文件目录，log_to_file 为 True 时必须提供
        max_bytes: 单个日志文件最大字节数，默认为 5MB
        backup_count: 保留的备份文件数量，默认为 5

    返回:
        配置好的 Logger 实例
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_to_file else level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    file_error: Optional[OSError] = None
    if log_to_file and log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_dir / LOG_FILE_NAME,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            logger.addHandler(file_handler)
        except OSError as e:
            # 日志目录不可写时退化为仅控制台输出
            logger.setLevel(level)
            log_to_console = True
            file_error = e

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console_handler)

    if file_error is not None:
        logger.warning(f"无法写入日志目录 {log_dir}: {file_error}")

    return logger


def get_logger() -> logging.Logger:
    """
    获取日志记录器实例。

    未经 setup_logger 配置时返回的 Logger 没有处理器，消息交由 logging 默认行为处理。

    返回:
        Logger 实例
    """
    return logging.getLogger(LOGGER_NAME)


def set_log_level(level: int) -> None:
    """
    设置控制台日志级别。

    参数:
        level: 日志级别（如 logging.DEBUG、logging.INFO 等）
    """
    logger = get_logger()
    for handler in logger.handlers:
        if not isinstance(handler, RotatingFileHandler):
            handler.setLevel(level)
    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        logger.setLevel(level)
