"""A process-wide logger with printf-style helper functions."""

from __future__ import annotations

import sys
import threading
from enum import IntEnum
from typing import ClassVar, Optional, TextIO

from .timestamp import Timestamp

_MAX_MESSAGE = 1023


class LogLevel(IntEnum):
    """Severity of a log record."""

    INFO = 0
    ERROR = 1
    FATAL = 2
    DEBUG = 3


_PREFIXES = {
    LogLevel.INFO: "[INFO]",
    LogLevel.ERROR: "[ERROR]",
    LogLevel.FATAL: "[FATAL]",
    LogLevel.DEBUG: "[DEBUG]",
}


class Logger:
    """Writes ``[LEVEL]time : message`` lines to a stream (stdout by default)."""

    _instance: ClassVar[Optional["Logger"]] = None
    _instance_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream
        self.debug_enabled = False
        self._level = LogLevel.INFO
        self._lock = threading.RLock()

    @classmethod
    def instance(cls) -> "Logger":
        """Return the single shared logger."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @property
    def log_level(self) -> LogLevel:
        return self._level

    def set_log_level(self, level: int) -> None:
        self._level = LogLevel(level)

    def log(self, msg: str) -> None:
        """Write one record at the current level."""
        with self._lock:
            stream = self.stream if self.stream is not None else sys.stdout
            prefix = _PREFIXES[self._level]
            stream.write(f"{prefix}{Timestamp.now().to_string()} : {msg.rstrip(chr(10))}\n")
            stream.flush()

    def _emit(self, level: LogLevel, msg: str) -> None:
        with self._lock:
            self.set_log_level(level)
            self.log(msg)


def _format(fmt: str, args: tuple) -> str:
    text = fmt % args if args else fmt
    return text[:_MAX_MESSAGE]


def log_info(fmt: str, *args: object) -> None:
    Logger.instance()._emit(LogLevel.INFO, _format(fmt, args))


def log_error(fmt: str, *args: object) -> None:
    Logger.instance()._emit(LogLevel.ERROR, _format(fmt, args))


def log_fatal(fmt: str, *args: object) -> None:
    """Log the message and terminate by raising ``SystemExit(-1)``."""
    Logger.instance()._emit(LogLevel.FATAL, _format(fmt, args))
    raise SystemExit(-1)


def log_debug(fmt: str, *args: object) -> None:
    """Log only when debugging output is enabled on the shared logger."""
    logger = Logger.instance()
    if logger.debug_enabled:
        logger._emit(LogLevel.DEBUG, _format(fmt, args))