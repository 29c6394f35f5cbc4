import logging
import sys
from logging.handlers import RotatingFileHandler

from core.config import settings

logger = logging.getLogger("drive")

formatter = logging.Formatter(
    fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s"
)

stream_handler = logging.StreamHandler(sys.stdout)
stream_handler.setFormatter(formatter)
handlers = [stream_handler]

if settings.LOG_FILE:
    file_handler = RotatingFileHandler(
        settings.LOG_FILE,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    handlers.append(file_handler)

logger.handlers = handlers
logger.setLevel(settings.LOG_LEVEL.upper())
logger.propagate = False
