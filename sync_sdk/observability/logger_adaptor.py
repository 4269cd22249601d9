"""Loguru-backed logger adaptor used across the SDK.

Every module obtains its logger with ``get_logger(__name__)``. Records carry the
module name and, when emitted from inside a Temporal activity, the workflow and
activity identifiers of the running invocation.
"""

import sys
from typing import Any, Dict, Optional

from loguru import logger as _loguru_logger
from temporalio import activity

from sync_sdk.constants import LOG_LEVEL

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> "
    "<level>{level: <8}</level> "
    "<cyan>{extra[logger_name]}</cyan> "
    "[{extra[workflow_id]}:{extra[activity_type]}] "
    "<level>{message}</level>"
)

_loggers: Dict[str, "SyncLogger"] = {}
_configured = False


def _add_temporal_context(record: Dict[str, Any]) -> None:
    if not activity.in_activity():
        return
    info = activity.info()
    record["extra"]["workflow_id"] = info.workflow_id
    record["extra"]["activity_type"] = info.activity_type


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Replace loguru's default sink with the SDK's stderr sink.

    Args:
        level (str): Minimum level to emit. Defaults to ``LOG_LEVEL``.
    """
    global _configured
    _loguru_logger.remove()
    _loguru_logger.configure(
        extra={"logger_name": "", "workflow_id": "-", "activity_type": "-"},
        patcher=_add_temporal_context,
    )
    _loguru_logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    _configured = True


class SyncLogger:
    """Thin adaptor forwarding to a loguru logger bound with ``logger_name``."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._log = _loguru_logger.bind(logger_name=name)

    def _emit(self, level: str, msg: str, args: Any, kwargs: Dict[str, Any]) -> None:
        # stdlib-style keywords (used by temporalio when it logs through
        # activity.logger) are translated rather than passed to str.format
        exc_info = kwargs.pop("exc_info", None)
        kwargs.pop("extra", None)
        self._log.opt(exception=exc_info or None).log(level, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("INFO", msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("ERROR", msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("WARNING", msg, args, kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._emit("DEBUG", msg, args, kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log.exception(msg, *args, **kwargs)


def get_logger(name: Optional[str] = None) -> SyncLogger:
    """Return the cached logger for ``name``, configuring loguru on first use."""
    if not _configured:
        setup_logging()
    if name is None:
        name = "sync_sdk"
    if name not in _loggers:
        _loggers[name] = SyncLogger(name)
    return _loggers[name]

