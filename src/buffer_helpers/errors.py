"""Exception classes.

buffer-helpers errors module

Only failures that this library detects itself get their own type.
Stream errors, spawn failures (``OSError``) and encoding failures
(``LookupError`` / ``UnicodeError``) are propagated verbatim.
"""

from __future__ import annotations

__all__ = [
    "BufferHelpersError",
    "RecursionLimitError",
    "ExecutionError",
    "ProcessTimeoutError",
]


class BufferHelpersError(Exception):
    """Base exception."""
    pass


class RecursionLimitError(BufferHelpersError):
    """A chain of deferred values never produced a terminal value.

    Attributes:
        max_depth: The configured maximum depth
        depth: The depth that was reached
    """

    def __init__(self, max_depth: int, depth: int | None = None) -> None:
        self.max_depth = max_depth
        self.depth = depth if depth is not None else max_depth + 1
        super().__init__(f"Maximum depth of {max_depth} reached!")


class ExecutionError(BufferHelpersError):
    """An external command exited with a non-zero status.

    Attributes:
        cmd: The executed argv
        returncode: Exit status of the process
        stdout: Captured standard output
        stderr: Captured standard error
    """

    def __init__(
        self,
        cmd: list[str],
        returncode: int | None,
        stdout: bytes = b"",
        stderr: bytes = b"",
    ) -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        name = self.cmd[0] if self.cmd else "<unknown>"
        return f"Command '{name}' exited with status {self.returncode}"


class ProcessTimeoutError(ExecutionError):
    """An external command did not finish in time and was terminated.

    Attributes:
        timeout: The timeout in seconds
    """

    def __init__(
        self,
        cmd: list[str],
        timeout: float,
        returncode: int | None = None,
    ) -> None:
        self.timeout = timeout
        super().__init__(cmd, returncode)

    def _format_message(self) -> str:
        name = self.cmd[0] if self.cmd else "<unknown>"
        return f"Command '{name}' timed out after {self.timeout} seconds"
