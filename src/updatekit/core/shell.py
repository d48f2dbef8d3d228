"""Asynchronous process execution shared by every backend."""

from __future__ import annotations

import asyncio
import os
import shlex
import shutil
import time
from dataclasses import dataclass
from typing import Optional

from updatekit.core.errors import CommandError, UnknownError, Utf8Error
from updatekit.core.logging import get_logger

log = get_logger(__name__)

# Parsers match English banners; keep data (package names, summaries) in the user's encoding.
ENV_OVERRIDES = {
    "LC_MESSAGES": "C",
    "HOMEBREW_NO_COLOR": "1",
    "HOMEBREW_NO_EMOJI": "1",
}


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of one process invocation."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def command_exists(name: str) -> bool:
    """Check if a command resolves in the system PATH.

    Args:
        name: Command name or path to check.

    Returns:
        True if the command exists, False otherwise.
    """
    return shutil.which(name) is not None


def _env() -> dict[str, str]:
    env = os.environ.copy()
    env.update(ENV_OVERRIDES)
    return env


async def run_capture(*cmd: str, timeout: Optional[float] = None) -> CommandOutput:
    """Run a command asynchronously and capture its output.

    The exit status is returned, not checked; callers decide what a
    non-zero status means for their tool.

    Args:
        *cmd: Command and its arguments to run.
        timeout: Optional timeout in seconds.

    Returns:
        The captured CommandOutput.

    Raises:
        CommandError: If the process cannot be spawned or times out.
        Utf8Error: If standard output is not valid UTF-8.
    """
    command = shlex.join(cmd)
    start = time.perf_counter()
    log.debug("command_start", command=command, timeout=timeout)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_env(),
        )
    except OSError as e:
        log.error("command_spawn_failed", command=command, error=str(e))
        raise CommandError(command=command, error=str(e)) from e

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        log.error(
            "command_timeout",
            command=command,
            timeout=timeout,
            duration_ms=duration_ms
        )
        try:
            process.kill()
        finally:
            raise CommandError(
                f"Command timed out after {timeout}s",
                command=command,
                context={"timeout": timeout, "duration_ms": duration_ms}
            ) from e

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info(
        "command_complete",
        command=command,
        returncode=process.returncode,
        duration_ms=duration_ms
    )

    try:
        stdout = out.decode("utf-8")
    except UnicodeDecodeError as e:
        raise Utf8Error(
            f"Invalid UTF-8 output: {e}",
            context={"command": command}
        ) from e

    return CommandOutput(
        stdout=stdout,
        stderr=err.decode("utf-8", errors="replace"),
        returncode=process.returncode,
    )


async def run_text(*cmd: str, timeout: Optional[float] = None) -> str:
    """Run a command and return its standard output.

    Args:
        *cmd: Command and its arguments to run.
        timeout: Optional timeout in seconds.

    Returns:
        Decoded standard output.

    Raises:
        UnknownError: If the command exits non-zero; stderr is embedded.
    """
    result = await run_capture(*cmd, timeout=timeout)
    if not result.ok:
        command = shlex.join(cmd)
        log.error(
            "command_failed",
            command=command,
            returncode=result.returncode,
            error=result.stderr.strip()
        )
        raise UnknownError.from_exit(
            " ".join(cmd[:2]), result.returncode, result.stderr, command=command
        )
    return result.stdout


async def run_checked(*cmd: str, action: str, timeout: Optional[float] = None) -> None:
    """Run a mutating command, mapping a non-zero exit to an error.

    Args:
        *cmd: Command and its arguments to run.
        action: Human description used in the error message, e.g. "brew install".
        timeout: Optional timeout in seconds.

    Raises:
        UnknownError: If the command exits non-zero; stderr is embedded.
    """
    result = await run_capture(*cmd, timeout=timeout)
    if not result.ok:
        log.error(
            "command_failed",
            command=shlex.join(cmd),
            returncode=result.returncode,
            error=result.stderr.strip()
        )
        raise UnknownError.from_exit(action, result.returncode, result.stderr, command=shlex.join(cmd))
