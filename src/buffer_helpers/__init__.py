"""buffer-helpers - normalize runtime values into bytes.

- as_buffer(): any value (bytes, deferred callables, streams, objects,
  strings) to bytes
- read_all(): aggregate a readable stream into one buffer
- ProcessRunner / exec_file(): run a command, capture stdout/stderr
- is_binary_content(): tell binary from text data
- CompletionGuard: deliver an asynchronous outcome exactly once

Environment variables:
    BUFHELP_MAX_DEPTH: Max depth of deferred values (default 63)
    BUFHELP_ENCODING: Default string encoding (default: platform)
    BUFHELP_LOG_DEBUG: Debug log to temp file (default false)
"""

__version__ = "0.1.0"

from .aggregate import aggregate, read_all
from .completion import CompletionGuard, create_completed_action, for_future
from .config import Config, get_config, load_config, reload_config
from .errors import (
    BufferHelpersError,
    ExecutionError,
    ProcessTimeoutError,
    RecursionLimitError,
)
from .events import EventEmitter, try_remove_listener
from .logging_setup import configure_logging
from .normalize import RecursionState, as_buffer, normalize
from .binary import is_binary_content, is_binary_content_sync
from .random_data import random_bytes
from .runtime import ExecOptions, ProcessResult, ProcessRunner, exec_file
from .streams import (
    ReadableStream,
    ReaderStream,
    as_readable_stream,
    is_readable_stream,
    is_stream_source,
)
from .strings import is_empty_string, normalize_encoding, normalize_string, to_string_safe

__all__ = [
    "__version__",
    # completion
    "CompletionGuard",
    "create_completed_action",
    "for_future",
    # normalization
    "RecursionState",
    "as_buffer",
    "normalize",
    "read_all",
    "aggregate",
    # processes
    "ExecOptions",
    "ProcessResult",
    "ProcessRunner",
    "exec_file",
    # streams and events
    "EventEmitter",
    "ReadableStream",
    "ReaderStream",
    "as_readable_stream",
    "is_readable_stream",
    "is_stream_source",
    "try_remove_listener",
    # strings
    "to_string_safe",
    "normalize_string",
    "is_empty_string",
    "normalize_encoding",
    # misc
    "random_bytes",
    "is_binary_content",
    "is_binary_content_sync",
    # config
    "Config",
    "load_config",
    "get_config",
    "reload_config",
    "configure_logging",
    # errors
    "BufferHelpersError",
    "RecursionLimitError",
    "ExecutionError",
    "ProcessTimeoutError",
]
