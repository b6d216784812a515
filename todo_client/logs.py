"""Logging setup for the todo client.

Console output goes to stdout with the same line format everywhere. The
in-memory handler keeps the last few records around so the GUI can show
an activity log without tailing a file.
"""
import logging
import sys
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List

LOG_FORMAT = '%(asctime)s %(levelname)s:%(name)s: %(message)s'
PACKAGE_LOGGER = 'todo_client'


class InMemoryHandler(logging.Handler):
    def __init__(self, capacity: int = 100):
        super().__init__()
        self.records: Deque[Dict[str, str]] = deque(maxlen=capacity)

    def emit(self, record):
        try:
            msg = self.format(record) if self.formatter else record.getMessage()
            self.records.append({
                'ts': datetime.now(timezone.utc).isoformat(),
                'level': record.levelname,
                'logger': record.name,
                'message': msg,
            })
        except Exception:
            self.handleError(record)

    def messages(self) -> List[str]:
        return [r['message'] for r in self.records]


memory_handler = InMemoryHandler()


def setup_logging(level: str | int = logging.INFO, stream=None) -> logging.Logger:
    """Configure the package logger; safe to call more than once.

    ``stream`` defaults to stdout. The CLI passes stderr so log lines do not
    mix with command output.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger = logging.getLogger(PACKAGE_LOGGER)
    formatter = logging.Formatter(LOG_FORMAT)
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    if memory_handler not in logger.handlers:
        memory_handler.setLevel(logging.DEBUG)
        memory_handler.setFormatter(formatter)
        logger.addHandler(memory_handler)
    logger.setLevel(level)
    return logger
