"""Process Executor - runs a diagnostic as a direct child process.

The program is exec'd with a literal argument vector (no shell), stdout
and stderr are merged into a single stream, and the call suspends until
the child exits.

Tool failures are expected behavior, not exceptions. Non-zero
exit, launch failure, timeout and output overflow are all returned as an
ExecutionResult with ``error`` set. Only task cancellation propagates,
after the child has been killed.

Limits (both off by default):
- timeout: wall-clock deadline in seconds, child is killed on expiry
- max_output_bytes: output cap, child is killed once it is exceeded
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional, Sequence

import structlog

from smoked.core.models import ExecutionResult

log = structlog.get_logger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class _OutputLimitExceeded(Exception):
    def __init__(self, output: bytes) -> None:
        super().__init__("output limit exceeded")
        self.output = output


class ProcessExecutor:
    """Runs external commands without a shell."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_output_bytes: Optional[int] = None,
    ) -> None:
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        if max_output_bytes is not None and max_output_bytes <= 0:
            raise ValueError("max_output_bytes must be positive")
        self._timeout = timeout
        self._max_output_bytes = max_output_bytes

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def max_output_bytes(self) -> Optional[int]:
        return self._max_output_bytes

    async def execute(
        self, executable: str, arguments: Sequence[str]
    ) -> ExecutionResult:
        """Run ``executable`` with ``arguments`` and capture its output.

        Args:
            executable: Program name (resolved via PATH) or path.
            arguments: Literal argument vector.

        Returns:
            ExecutionResult; ``output`` holds the merged stdout/stderr.

        Raises:
            asyncio.CancelledError: If the awaiting task is cancelled. The
                child is killed and reaped first.
        """
        start_time = time.perf_counter()
        argv = [executable, *arguments]

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except (OSError, ValueError) as e:
            # Missing binary, permission denied, NUL byte in argv
            log.warning("process_launch_failed", command=executable, error=str(e))
            return ExecutionResult(
                output=b"",
                exit_code=-1,
                duration_ms=_elapsed_ms(start_time),
                error=str(e),
                error_type="LAUNCH_FAILED",
            )

        log.debug("process_started", command=executable, pid=proc.pid, args=list(arguments))

        try:
            output = await asyncio.wait_for(self._collect(proc), timeout=self._timeout)
        except asyncio.TimeoutError:
            await _kill(proc)
            log.warning("process_timeout", command=executable, timeout=self._timeout)
            return ExecutionResult(
                output=b"",
                exit_code=-1,
                duration_ms=_elapsed_ms(start_time),
                error=f"execution timed out after {self._timeout:g}s",
                error_type="TIMEOUT",
            )
        except _OutputLimitExceeded as e:
            await _kill(proc)
            log.warning(
                "process_output_limit",
                command=executable,
                max_output_bytes=self._max_output_bytes,
            )
            return ExecutionResult(
                output=e.output,
                exit_code=-1,
                duration_ms=_elapsed_ms(start_time),
                error=f"output exceeded {self._max_output_bytes} bytes",
                error_type="OUTPUT_LIMIT",
            )
        except asyncio.CancelledError:
            await _kill(proc)
            log.info("process_cancelled", command=executable, pid=proc.pid)
            raise

        exit_code = proc.returncode if proc.returncode is not None else -1
        duration_ms = _elapsed_ms(start_time)

        if exit_code != 0:
            log.warning(
                "process_failed",
                command=executable,
                exit_code=exit_code,
                output=output[-512:].decode("utf-8", errors="replace"),
            )
            return ExecutionResult(
                output=output,
                exit_code=exit_code,
                duration_ms=duration_ms,
                error=_exit_message(exit_code),
                error_type="NON_ZERO_EXIT",
            )

        log.debug("process_completed", command=executable, duration_ms=duration_ms, bytes=len(output))
        return ExecutionResult(output=output, exit_code=0, duration_ms=duration_ms)

    async def _collect(self, proc: asyncio.subprocess.Process) -> bytes:
        """Read the merged output stream to EOF, then reap the child."""
        if self._max_output_bytes is None:
            output, _ = await proc.communicate()
            return output

        assert proc.stdout is not None
        buf = bytearray()
        while True:
            chunk = await proc.stdout.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            buf.extend(chunk)
            if len(buf) > self._max_output_bytes:
                raise _OutputLimitExceeded(bytes(buf[: self._max_output_bytes]))
        await proc.wait()
        return bytes(buf)


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


def _exit_message(exit_code: int) -> str:
    if exit_code < 0:
        return f"terminated by signal {-exit_code}"
    return f"exit status {exit_code}"


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)
