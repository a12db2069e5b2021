from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional, Union

# Request correlation id (set by the HTTP middleware) and the database being
# reconciled or seeded (set by target_context). Both end up on every record.
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
target_var: ContextVar[Optional[str]] = ContextVar("target", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [cid=%(correlation_id)s target=%(target)s] %(message)s"


class LoggingContextFilter(logging.Filter):
    """Copy correlation_id and target from the current context onto the record ('-' when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.target = target_var.get() or "-"
        return True


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str, None] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    The level defaults to the LOG_LEVEL environment variable, then INFO.
    Calling this again replaces the handler rather than adding another one.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level or os.getenv("LOG_LEVEL", "INFO").upper())


# PUBLIC_INTERFACE
@contextmanager
def target_context(target: str) -> Iterator[None]:
    """Label log records emitted inside the block with a (password-masked) target."""
    token = target_var.set(target)
    try:
        yield
    finally:
        target_var.reset(token)
