import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Generator, Optional, Union

# Name of the declared query currently executing in this task
query_name: ContextVar[Optional[str]] = ContextVar("query_name", default=None)


class TraceFormatter(logging.Formatter):
    """
    Formatter that prefixes records with the active query name and uses UTC.
    """

    def __init__(self, fmt: str | None = None, datefmt: str | None = None):
        super().__init__(fmt, datefmt)
        self.converter = time.gmtime

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        if datefmt:
            return time.strftime(datefmt, ct)
        t = time.strftime("%Y-%m-%d %H:%M:%S", ct)
        return "%s.%03dZ" % (t, record.msecs)

    def format(self, record: logging.LogRecord) -> str:
        name = query_name.get()
        record.query_str = f"[{name}] " if name else ""
        return super().format(record)


def get_logger(name: str) -> logging.Logger:
    """
    Returns a standard logger instance.

    >>> logger = get_logger(__name__)
    """
    return logging.getLogger(name)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    module_name: str = "flash_query",
) -> None:
    """
    Attach a stdout handler with ``TraceFormatter`` to the package logger.

    Args:
        level: Logging level (INFO, DEBUG, etc.)
        module_name: Logger namespace to configure.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    target_logger = logging.getLogger(module_name)

    # Reset handlers so tests can reconfigure
    target_logger.handlers.clear()
    target_logger.setLevel(level)

    log_format = "%(asctime)s %(levelname)-8s %(query_str)s%(name)s: %(message)s"
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(TraceFormatter(log_format))
    target_logger.addHandler(console)
    target_logger.propagate = False


def set_query_name(value: str | None) -> Token:
    return query_name.set(value)


def reset_query_name(token: Token) -> None:
    query_name.reset(token)


@contextmanager
def scoped_query_name(value: str | None) -> Generator[None, None, None]:
    """
    Label every log record emitted inside the block with a query name.

    >>> with scoped_query_name("users.list"):
    ...     pass
    """
    token = set_query_name(value)
    try:
        yield
    finally:
        reset_query_name(token)
