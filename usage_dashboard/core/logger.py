"""
Logger configuration using loguru.
"""

import os
import sys
from pathlib import Path

from loguru import logger

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")

# Remove default handler
logger.remove()

# Add console handler with custom format
logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level=LOG_LEVEL,
    enqueue=True,  # Thread-safe logging
    backtrace=True,
    diagnose=True,
)

# Add file handler for debugging
log_path = Path(LOG_DIR)
log_path.mkdir(exist_ok=True)

logger.add(
    str(log_path / "usage_dashboard_{time}.log"),
    rotation="1 day",  # Create new file daily
    retention="1 week",  # Keep logs for 1 week
    compression="zip",  # Compress rotated logs
    level=LOG_LEVEL,
    enqueue=True,
    backtrace=True,
    diagnose=True,
)

logger.configure(extra={"name": "usage_dashboard"})

# Export logger instance
get_logger = logger.bind
