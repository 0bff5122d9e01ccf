"""Shared async command utilities for agent network modules."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Exit codes reported when the process never ran or was killed
EXIT_CANNOT_EXECUTE = 126
EXIT_NOT_FOUND = 127
EXIT_TIMED_OUT = 124


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single external command."""

    returncode: int
    stdout: str
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


async def run_cmd(
    cmd: list[str],
    timeout: float | None = None,
    merge_stderr: bool = False,
) -> CommandResult:
    """Run a command asynchronously.

    Never raises for process-level failures: a missing executable, a non-zero
    exit or a timeout are all reported through the returned CommandResult.

    Args:
        cmd: Command and arguments as list
        timeout: Seconds to wait before killing the process (None waits forever)
        merge_stderr: Capture stderr into stdout, like ``2>&1``

    Returns:
        CommandResult with exit code and decoded output
    """
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT if merge_stderr else asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        logger.debug(f"Cannot execute {cmd[0]}: {e}")
        return CommandResult(returncode=EXIT_NOT_FOUND, stdout="", stderr=str(e))
    except OSError as e:
        # Permission denied, exec format error and similar launch failures
        logger.warning(f"Cannot execute {cmd[0]}: {e}")
        return CommandResult(returncode=EXIT_CANNOT_EXECUTE, stdout="", stderr=str(e))

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.warning(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        return CommandResult(
            returncode=EXIT_TIMED_OUT,
            stdout="",
            stderr=f"timed out after {timeout}s",
            timed_out=True,
        )

    return CommandResult(
        returncode=process.returncode or 0,
        stdout=(stdout or b"").decode(errors="replace"),
        stderr=(stderr or b"").decode(errors="replace"),
    )
