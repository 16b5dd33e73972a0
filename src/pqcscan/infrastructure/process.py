"""Subprocess execution with a wall-clock timeout and bounded output."""

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from pathlib import Path

from pqcscan.core.exceptions import (
    ExecutableNotFoundError,
    OutputLimitError,
    ProcessTimeoutError,
)

READ_CHUNK_SIZE = 64 * 1024


class ProcessResult:
    """Exit status and captured output of a finished process."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: int,
        stdout: bytes,
        stderr: bytes,
        duration_seconds: float = 0.0,
    ) -> None:
        self.args = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.duration_seconds = duration_seconds

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


ProcessRunner = Callable[..., Awaitable[ProcessResult]]


async def _read_capped(stream: asyncio.StreamReader, limit: int, label: str) -> bytes:
    chunks: list[bytes] = []
    size = 0
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise OutputLimitError(
                f"Process {label} exceeded {limit} bytes",
                details={"limit": limit, "stream": label},
            )
        chunks.append(chunk)
    return b"".join(chunks)


async def _terminate(
    proc: asyncio.subprocess.Process,
    tasks: Sequence[asyncio.Future],
) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def run_process(
    args: Sequence[str],
    *,
    timeout: float,
    max_output_bytes: int,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> ProcessResult:
    """Run a command given as an argument vector, never through a shell.

    A non-zero exit status is returned, not raised. The process is killed when
    it outlives ``timeout`` or writes more than ``max_output_bytes`` to either
    stream.
    """
    if not args:
        raise ValueError("args must not be empty")

    start = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise ExecutableNotFoundError(
            f"Executable not found: {args[0]}",
            details={"executable": args[0]},
        ) from e

    assert proc.stdout is not None and proc.stderr is not None
    stdout_task = asyncio.ensure_future(_read_capped(proc.stdout, max_output_bytes, "stdout"))
    stderr_task = asyncio.ensure_future(_read_capped(proc.stderr, max_output_bytes, "stderr"))
    readers = (stdout_task, stderr_task)

    try:
        await asyncio.wait_for(
            asyncio.gather(stdout_task, stderr_task, proc.wait()),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        await _terminate(proc, readers)
        raise ProcessTimeoutError(
            f"Process timed out after {timeout}s: {args[0]}",
            details={"timeout": timeout, "executable": args[0]},
        ) from None
    except BaseException:
        await _terminate(proc, readers)
        raise

    return ProcessResult(
        args=args,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout_task.result(),
        stderr=stderr_task.result(),
        duration_seconds=time.monotonic() - start,
    )
