from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional, Union


correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
actor_var: ContextVar[Optional[str]] = ContextVar("actor", default=None)


class LoggingContextFilter(logging.Filter):
    """
    Inject the request correlation id and acting operator into each log record.

    Placeholders are used outside a request.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        setattr(record, "correlation_id", correlation_id_var.get() or "-")
        setattr(record, "actor", actor_var.get() or "-")
        return True


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Configure root logging with a structured format and context filter."""
    handler = logging.StreamHandler(stream=sys.stdout)
    fmt = (
        "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | actor=%(actor)s | "
        "%(message)s"
    )
    handler.setFormatter(logging.Formatter(fmt=fmt))
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)
