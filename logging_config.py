import logging
from logging.handlers import RotatingFileHandler

from config import Config

LOGGER_NAME = 'sd_metadata'


def setup_logging() -> logging.Logger:
    """
    配置日志记录，使用 RotatingFileHandler 防止日志文件过大。
    多个模块重复调用时只会初始化一次处理器。
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    # 控制台处理器，默认只输出警告以上，避免与报告输出混在一起
    ch = logging.StreamHandler()
    ch.setLevel(Config.LOG_CONSOLE_LEVEL)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    # 文件处理器，单个日志文件最大 1MB，最多保留 5 个备份
    fh = RotatingFileHandler(
        Config.LOG_FILE,
        maxBytes=Config.LOG_MAX_BYTES,
        backupCount=Config.LOG_BACKUP_COUNT,
        encoding='utf-8',
        delay=True
    )
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    logger.addHandler(fh)

    return logger
