"""Process runner that captures command output as buffers.

buffer-helpers runtime module

This module provides:
- Launching an external command with a normalized argv
- Capturing stdout/stderr through the stream aggregator
- A structured result delivered exactly once
- Cancel-safe cleanup using asyncio.shield

Key design points:
- POSIX: start_new_session=True to create new process group
- Windows: CREATE_NEW_PROCESS_GROUP for signal isolation
- Failure or cancellation terminates the process group, not just the main process
- No partial result ever reaches the caller
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import anyio

from ..completion import for_future
from ..config import get_config
from ..errors import ExecutionError, ProcessTimeoutError
from ..normalize import as_buffer
from ..strings import normalize_encoding, to_string_safe

__all__ = [
    "ExecOptions",
    "ProcessResult",
    "ProcessRunner",
    "exec_file",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

# Output of external commands is decoded as UTF-8 unless told otherwise
DEFAULT_EXEC_ENCODING = "utf-8"


@dataclass
class ExecOptions:
    """Options for one command execution.

    Attributes:
        env: Environment variables (None = runner default)
        cwd: Working directory (None = current directory)
        encoding: Encoding for text output chunks
        timeout: Seconds before the process is terminated (None = no limit)
        stdin_bytes: Optional bytes to write to stdin
    """

    env: Mapping[str, str] | None = None
    cwd: str | Path | None = None
    encoding: str | None = DEFAULT_EXEC_ENCODING
    timeout: float | None = None
    stdin_bytes: bytes | None = None


@dataclass(frozen=True)
class ProcessResult:
    """Result of a command execution.

    Attributes:
        stdout: Output from the standard output stream
        stderr: Output from the standard error stream
        process: The underlying (exited) process
    """

    stdout: bytes
    stderr: bytes
    process: asyncio.subprocess.Process = field(repr=False)

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    @property
    def pid(self) -> int:
        return self.process.pid


def _as_argument_list(args: Any) -> list[str]:
    """Normalize arguments to strings, keeping order, count and empties."""
    if args is None:
        return []
    if isinstance(args, (str, bytes)) or not isinstance(args, Iterable):
        args = [args]
    return [to_string_safe(a) for a in args]


@dataclass
class ProcessRunner:
    """Runs external commands and captures their output.

    Example:
        runner = ProcessRunner()
        result = await runner.run("git", ["status", "--porcelain"])
        print(result.stdout.decode())

    Attributes:
        term_timeout: Seconds to wait after SIGTERM during cleanup
        kill_timeout: Seconds to wait after SIGKILL during cleanup
        environ: Default environment when ExecOptions.env is None
            (None = snapshot of os.environ at call time)
    """

    term_timeout: float = field(default_factory=lambda: get_config().term_timeout)
    kill_timeout: float = field(default_factory=lambda: get_config().kill_timeout)
    environ: Mapping[str, str] | None = None

    async def run(
        self,
        command: Any,
        args: Any = None,
        options: ExecOptions | None = None,
    ) -> ProcessResult:
        """Execute a command and capture its output.

        This method:
        1. Normalizes command and arguments to strings
        2. Starts the subprocess in an isolated process group/session
        3. Feeds stdout and stderr through as_buffer() concurrently
        4. Waits for the process to exit
        5. Ensures cleanup even if cancelled or failed

        Args:
            command: The command to execute
            args: One or more arguments
            options: Execution options

        Returns:
            ProcessResult with both buffers and the process

        Raises:
            OSError: The command could not be started
            ExecutionError: The command exited with a non-zero status
            ProcessTimeoutError: The command exceeded options.timeout
        """
        options = options or ExecOptions()
        argv = [to_string_safe(command), *_as_argument_list(args)]
        encoding = normalize_encoding(options.encoding) or DEFAULT_EXEC_ENCODING

        future: asyncio.Future[ProcessResult] = asyncio.get_running_loop().create_future()
        completed = for_future(future)

        process: asyncio.subprocess.Process | None = None
        kwargs = self._build_subprocess_kwargs(options)

        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    *argv,
                    stdin=asyncio.subprocess.PIPE if options.stdin_bytes is not None else asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    **kwargs,
                )
            except Exception as e:
                logger.debug(f"Failed to start argv={argv[0]}: {e!r}")
                completed(e)
            else:
                logger.debug(
                    "Started subprocess pid=%s argv=%s options=%s",
                    process.pid,
                    argv[0],
                    {"cwd": options.cwd, "timeout": options.timeout, "encoding": encoding},
                )
                try:
                    result = await self._capture(process, argv, options, encoding)
                except Exception as e:
                    completed(e)
                else:
                    completed(None, result)

            return await future

        finally:
            await self._safe_cleanup(process)

    def _resolve_env(self, options: ExecOptions) -> dict[str, str]:
        if options.env is not None:
            return dict(options.env)
        if self.environ is not None:
            return dict(self.environ)
        return dict(os.environ)

    def _build_subprocess_kwargs(self, options: ExecOptions) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs.

        Args:
            options: Execution options

        Returns:
            Dict of kwargs for asyncio.create_subprocess_exec
        """
        kwargs: dict[str, Any] = {"env": self._resolve_env(options)}

        if options.cwd is not None:
            kwargs["cwd"] = options.cwd

        # Platform-specific isolation
        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True

        return kwargs

    async def _capture(
        self,
        process: asyncio.subprocess.Process,
        argv: list[str],
        options: ExecOptions,
        encoding: str,
    ) -> ProcessResult:
        """Collect both output streams and the exit status."""
        if options.timeout is None:
            stdout, stderr, returncode = await self._communicate(process, options, encoding)
        else:
            try:
                with anyio.fail_after(options.timeout):
                    stdout, stderr, returncode = await self._communicate(
                        process, options, encoding
                    )
            except TimeoutError:
                logger.debug(
                    f"Subprocess timed out pid={process.pid} "
                    f"timeout={options.timeout}"
                )
                raise ProcessTimeoutError(argv, options.timeout, process.returncode) from None

        logger.debug(
            f"Subprocess completed pid={process.pid} "
            f"returncode={returncode} stdout={len(stdout)}B stderr={len(stderr)}B"
        )

        if returncode != 0:
            raise ExecutionError(argv, returncode, stdout, stderr)

        return ProcessResult(stdout=stdout, stderr=stderr, process=process)

    async def _communicate(
        self,
        process: asyncio.subprocess.Process,
        options: ExecOptions,
        encoding: str,
    ) -> tuple[bytes, bytes, int]:
        tasks = [
            asyncio.ensure_future(as_buffer(process.stdout, encoding)),
            asyncio.ensure_future(as_buffer(process.stderr, encoding)),
            asyncio.ensure_future(self._write_stdin(process, options.stdin_bytes)),
        ]

        try:
            stdout, stderr, _ = await asyncio.gather(*tasks)
            returncode = await process.wait()
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            raise

        return stdout or b"", stderr or b"", returncode

    async def _write_stdin(
        self,
        process: asyncio.subprocess.Process,
        data: bytes | None,
    ) -> None:
        if data is None or process.stdin is None:
            return

        try:
            process.stdin.write(data)
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # Process exited without reading all input
            logger.debug(f"stdin closed early pid={process.pid}")
        finally:
            process.stdin.close()

    async def _safe_cleanup(
        self,
        process: asyncio.subprocess.Process | None,
    ) -> None:
        """Safely terminate the subprocess, shielded from cancellation.

        Args:
            process: The subprocess to terminate
        """
        if process is None or process.returncode is not None:
            return

        try:
            await asyncio.shield(self._terminate_process(process))
        except asyncio.CancelledError:
            # If shield itself is cancelled, still try cleanup
            await self._terminate_process(process)
            raise

    async def _terminate_process(
        self,
        process: asyncio.subprocess.Process,
    ) -> None:
        """Terminate subprocess gracefully, then forcefully if needed.

        Termination strategy:
        1. Send SIGTERM (or CTRL_BREAK_EVENT on Windows)
        2. Wait up to term_timeout for graceful exit
        3. If still running, send SIGKILL (or kill() on Windows)
        4. Wait up to kill_timeout for forced exit

        Args:
            process: The subprocess to terminate
        """
        pid = process.pid
        logger.debug(f"Terminating subprocess pid={pid}")

        try:
            if IS_WINDOWS:
                self._windows_terminate(process)
            else:
                self._posix_signal(process, signal.SIGTERM)

            try:
                await asyncio.wait_for(process.wait(), timeout=self.term_timeout)
                logger.debug(
                    f"Subprocess terminated gracefully pid={pid} "
                    f"returncode={process.returncode}"
                )
                return
            except asyncio.TimeoutError:
                pass

            logger.debug(f"Force killing subprocess pid={pid}")
            if IS_WINDOWS:
                process.kill()
            else:
                self._posix_signal(process, signal.SIGKILL)

            try:
                await asyncio.wait_for(process.wait(), timeout=self.kill_timeout)
                logger.debug(
                    f"Subprocess killed pid={pid} "
                    f"returncode={process.returncode}"
                )
            except asyncio.TimeoutError:
                logger.warning(f"Subprocess did not exit after kill pid={pid}")

        except ProcessLookupError:
            logger.debug(f"Subprocess already exited pid={pid}")
        except Exception as e:
            logger.warning(f"Error terminating subprocess pid={pid}: {e}")

    def _posix_signal(
        self,
        process: asyncio.subprocess.Process,
        sig: signal.Signals,
    ) -> None:
        """Send a signal to the process group on POSIX systems.

        Args:
            process: The subprocess
            sig: SIGTERM or SIGKILL
        """
        try:
            # Process group ID equals pid due to start_new_session
            pgid = os.getpgid(process.pid)
            os.killpg(pgid, sig)
            logger.debug(f"Sent {sig.name} to process group pgid={pgid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to send_signal: {e}")
            process.send_signal(sig)

    def _windows_terminate(
        self,
        process: asyncio.subprocess.Process,
    ) -> None:
        """Send CTRL_BREAK_EVENT on Windows.

        Args:
            process: The subprocess
        """
        try:
            # Works because of CREATE_NEW_PROCESS_GROUP
            os.kill(process.pid, signal.CTRL_BREAK_EVENT)
            logger.debug(f"Sent CTRL_BREAK_EVENT to pid={process.pid}")
        except (ProcessLookupError, OSError) as e:
            logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")
            process.terminate()


async def exec_file(
    command: Any,
    args: Any = None,
    options: ExecOptions | None = None,
) -> ProcessResult:
    """Execute a command with a default ProcessRunner.

    Args:
        command: The command to execute
        args: One or more arguments
        options: Execution options

    Returns:
        ProcessResult with both buffers and the process
    """
    return await ProcessRunner().run(command, args, options)
