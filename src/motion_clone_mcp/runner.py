"""Subprocess executor for the ffmpeg / ffprobe binaries."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass

from .errors import DependencyMissingError, SubprocessError

logger = logging.getLogger(__name__)

SIGTERM_GRACE_SECONDS = 5


@dataclass(frozen=True)
class SubprocessResult:
    """Immutable result of a subprocess execution."""

    stdout: str
    stderr: str
    returncode: int
    duration_seconds: float
    command: list[str]


def require_binary(name: str) -> str:
    """Return the absolute path of *name* on PATH.

    Raises:
        DependencyMissingError: When the binary is not installed.
    """
    path = shutil.which(name)
    if not path:
        raise DependencyMissingError(f"{name} not found in PATH")
    return path


async def run_tool(binary: str, *args: str, timeout: int) -> SubprocessResult:
    """Run *binary* with an argument list (never a shell) and capture output.

    On timeout, sends SIGTERM, waits 5s, then SIGKILL, and re-raises.

    Raises:
        DependencyMissingError: When *binary* is not on PATH.
        SubprocessError: On non-zero exit code.
        asyncio.TimeoutError: When the process exceeds *timeout*.
    """
    cmd = [require_binary(binary), *args]
    logger.debug("Running: %s (timeout=%ds)", " ".join(cmd), timeout)
    start = time.monotonic()

    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            proc.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %ds, sending SIGTERM", binary, timeout)
        proc.terminate()
        try:
            await asyncio.wait_for(proc.communicate(), timeout=SIGTERM_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("%s did not exit after SIGTERM, sending SIGKILL", binary)
            proc.kill()
            await proc.communicate()
        raise

    result = SubprocessResult(
        stdout=stdout_bytes.decode("utf-8", errors="replace"),
        stderr=stderr_bytes.decode("utf-8", errors="replace"),
        returncode=proc.returncode or 0,
        duration_seconds=round(time.monotonic() - start, 2),
        command=cmd,
    )
    if result.returncode != 0:
        logger.error(
            "%s failed (exit %d)\nstderr: %s", binary, result.returncode, result.stderr[:500]
        )
        raise SubprocessError(cmd, result.returncode, result.stderr)
    return result
