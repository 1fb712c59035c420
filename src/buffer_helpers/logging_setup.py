"""Logging setup.

The library itself only creates module loggers. Applications that want the
``buffer_helpers`` namespace routed somewhere call configure_logging().
"""

from __future__ import annotations

import json
import logging
import sys

from .config import Config, get_config

__all__ = ["configure_logging", "LOG_FORMAT"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JsonSerializingFormatter(logging.Formatter):
    """Formatter that JSON-serializes object arguments."""

    def format(self, record: logging.LogRecord) -> str:
        if record.args and isinstance(record.args, tuple):
            new_args = []
            for arg in record.args:
                try:
                    if isinstance(arg, dict):
                        new_args.append(json.dumps(arg, ensure_ascii=False, default=str))
                    elif hasattr(arg, "__dict__") and not isinstance(arg, (str, int, float, bool, type(None))):
                        new_args.append(json.dumps(vars(arg), ensure_ascii=False, default=str))
                    else:
                        new_args.append(arg)
                except (TypeError, ValueError):
                    new_args.append(arg)
            record.args = tuple(new_args)
        return super().format(record)


def configure_logging(config: Config | None = None) -> list[logging.Handler]:
    """Install log handlers for the buffer_helpers namespace.

    Debug mode writes everything to ``config.log_file``; otherwise INFO and
    above go to stderr. Third-party loggers stay at WARNING.

    Args:
        config: Configuration (default: global config)

    Returns:
        The installed handlers
    """
    config = config or get_config()

    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(JsonSerializingFormatter(LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("buffer_helpers").setLevel(log_level)

    return log_handlers
