"""Runtime module for external process execution.

Runs commands in an isolated process group and captures their output
as buffers through the stream aggregator.
"""

from __future__ import annotations

from .process_runner import ExecOptions, ProcessResult, ProcessRunner, exec_file

__all__ = [
    "ExecOptions",
    "ProcessResult",
    "ProcessRunner",
    "exec_file",
]
