"""
Logger configuration for the collector, using loguru.

Only a stderr sink by default; set USAGE_COLLECTOR_LOG_FILE to also keep a
rotating log file (useful under pm2/systemd).
"""

import os
import sys

from loguru import logger

LOG_LEVEL = os.getenv("USAGE_COLLECTOR_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("USAGE_COLLECTOR_LOG_FILE")

logger.remove()

logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
    level=LOG_LEVEL,
    backtrace=False,
    diagnose=False,
)

if LOG_FILE:
    logger.add(
        LOG_FILE,
        rotation="1 day",
        retention="1 week",
        compression="zip",
        level="DEBUG",
        enqueue=True,
    )

get_logger = logger.bind
