"""Environment variable configuration.

Environment variables:
    BUFHELP_MAX_DEPTH: Maximum depth of chained deferred values
        - Default 63
        - Clamped to 0-4096, invalid values fall back to the default

    BUFHELP_ENCODING: Default string encoding
        - Empty/unset = platform default (sys.getdefaultencoding())
        - Passed through verbatim, an unknown name fails at encode time

    BUFHELP_TERM_TIMEOUT: Seconds to wait after SIGTERM before SIGKILL
        - Default 2.0, clamped to 0.1-60

    BUFHELP_KILL_TIMEOUT: Seconds to wait after SIGKILL
        - Default 1.0, clamped to 0.1-60

    BUFHELP_LOG_DEBUG: Debug logging mode
        - true/1/yes = on (logs go to a temp file)
        - false/0/no = off (default, logs go to stderr)
"""

from __future__ import annotations

import os
import sys
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = [
    "Config",
    "DEFAULT_MAX_DEPTH",
    "load_config",
    "get_config",
    "reload_config",
]

DEFAULT_MAX_DEPTH = 63
DEFAULT_TERM_TIMEOUT = 2.0
DEFAULT_KILL_TIMEOUT = 1.0

_MAX_DEPTH_LIMIT = 4096


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_max_depth(value: str | None) -> int:
    """Parse the deferred-value depth limit."""
    if not value or not value.strip():
        return DEFAULT_MAX_DEPTH
    try:
        depth = int(value.strip())
    except ValueError:
        return DEFAULT_MAX_DEPTH
    return max(0, min(depth, _MAX_DEPTH_LIMIT))


def _parse_timeout(value: str | None, default: float) -> float:
    """Parse a termination grace period."""
    if not value:
        return default
    try:
        timeout = float(value)
        return max(0.1, min(timeout, 60.0))
    except ValueError:
        return default


def _parse_encoding(value: str | None) -> str | None:
    """Blank means "use the platform default"."""
    if value is None or not value.strip():
        return None
    return value.strip().lower()


@dataclass
class Config:
    """Library configuration.

    Attributes:
        max_depth: Maximum depth of chained deferred values
        encoding: Default string encoding, None = platform default
        term_timeout: Seconds to wait after SIGTERM
        kill_timeout: Seconds to wait after SIGKILL
        log_debug: Debug logging mode (log to temp file)
        log_file: Log file path (set automatically when log_debug=True)
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    encoding: str | None = None
    term_timeout: float = DEFAULT_TERM_TIMEOUT
    kill_timeout: float = DEFAULT_KILL_TIMEOUT
    log_debug: bool = False
    log_file: str | None = None

    @property
    def default_encoding(self) -> str:
        """The encoding used when a call does not name one."""
        return self.encoding or sys.getdefaultencoding()

    def __repr__(self) -> str:
        return (
            f"Config(max_depth={self.max_depth}, "
            f"encoding={self.default_encoding}, "
            f"term_timeout={self.term_timeout}, "
            f"kill_timeout={self.kill_timeout}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """Build a timestamped log file path in the temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "buffer-helpers"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"bufhelp_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Load configuration from environment variables.

    Args:
        environ: Variables to read (default: os.environ)
    """
    env = os.environ if environ is None else environ

    log_debug = _parse_bool(env.get("BUFHELP_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        max_depth=_parse_max_depth(env.get("BUFHELP_MAX_DEPTH")),
        encoding=_parse_encoding(env.get("BUFHELP_ENCODING")),
        term_timeout=_parse_timeout(
            env.get("BUFHELP_TERM_TIMEOUT"), DEFAULT_TERM_TIMEOUT
        ),
        kill_timeout=_parse_timeout(
            env.get("BUFHELP_KILL_TIMEOUT"), DEFAULT_KILL_TIMEOUT
        ),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global instance, loaded lazily
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload the global configuration (for tests)."""
    global _config
    _config = load_config()
    return _config
