"""
Bash Executor

Two halves split across the trusted-host boundary:

- resolve_bash() builds the literal command line where definitions live
- run_bash() runs a resolved plan on the trusted host

Design decisions:
- No shell: the command is split on whitespace and exec'd directly, so
  `;`, `&&` and `|` reach the program as literal arguments
- A non-empty allowed_commands list is checked before anything is spawned
- Timeout and output overflow kill the process; partial output is kept
"""

import asyncio
import contextlib
import errno
from typing import Any

from actionhub.actions.templates import resolve
from actionhub.core.exceptions import ActionConfigError, CommandNotAllowedError
from actionhub.core.results import BashOutput, BashPlan, BashResult
from actionhub.core.types import ActionDefinition
from actionhub.observability.logging import get_logger

logger = get_logger("actionhub.actions.bash")

DEFAULT_TIMEOUT_MS = 30000
MAX_OUTPUT_BYTES = 1024 * 1024

_READ_CHUNK = 64 * 1024


def resolve_bash(definition: ActionDefinition, params: dict[str, Any]) -> BashPlan:
    """
    Resolve a bash action into a plan.

    Raises:
        ActionConfigError: If the definition has no bash_config
    """
    config = definition.bash_config
    if config is None:
        raise ActionConfigError(
            "Bash action missing bash_config",
            context={"action": definition.name},
        )

    return BashPlan(
        command=resolve(config.command_template, params),
        timeout_ms=config.timeout_ms or DEFAULT_TIMEOUT_MS,
        working_directory=config.working_directory or None,
        allowed_commands=list(config.allowed_commands or []),
    )


def check_allowed(plan: BashPlan) -> None:
    """
    Enforce the whitelist.

    Raises:
        CommandNotAllowedError: Base command missing from a non-empty whitelist
    """
    if not plan.allowed_commands:
        logger.warning(
            "Bash action has no allowed_commands whitelist",
            command=plan.base_command,
        )
        return
    if plan.base_command not in plan.allowed_commands:
        raise CommandNotAllowedError(plan.base_command, plan.allowed_commands)


def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()


async def _pump(
    stream: asyncio.StreamReader,
    buffer: bytearray,
    limit: int,
    process: asyncio.subprocess.Process,
    overflow: list[bool],
) -> None:
    """Copy a pipe into buffer, killing the process past the byte limit."""
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        room = limit - len(buffer)
        if len(chunk) > room:
            buffer.extend(chunk[: max(room, 0)])
            overflow.append(True)
            _kill(process)
            return
        buffer.extend(chunk)


def _decode(buffer: bytearray) -> str:
    return buffer.decode("utf-8", errors="replace").strip()


def _failure(error: str, stdout: bytearray, stderr: bytearray, code: int | str | None) -> BashResult:
    return BashResult(
        success=False,
        error=error,
        data=BashOutput(stdout=_decode(stdout), stderr=_decode(stderr), code=code),
    )


async def run_bash(plan: BashPlan, max_output_bytes: int = MAX_OUTPUT_BYTES) -> BashResult:
    """
    Run a resolved bash plan.

    Never raises for process-level failure; rejections, spawn errors,
    non-zero exits, timeouts and overflow all come back as success=False.
    """
    command = (plan.command or "").strip()
    if not command:
        return BashResult(success=False, error="No command to execute")

    try:
        check_allowed(plan)
    except CommandNotAllowedError as e:
        logger.warning("Command rejected", command=e.command, allowed=e.allowed)
        return BashResult(success=False, error=e.message)

    argv = command.split()
    timeout_ms = plan.timeout_ms or DEFAULT_TIMEOUT_MS
    stdout = bytearray()
    stderr = bytearray()

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=plan.working_directory or None,
        )
    except OSError as e:
        code = errno.errorcode.get(e.errno, "EUNKNOWN") if e.errno else "EUNKNOWN"
        logger.warning("Failed to spawn command", command=argv[0], error=e)
        return _failure(f"spawn {argv[0]} {code}: {e.strerror or e}", stdout, stderr, code)
    except ValueError as e:
        # Arguments with embedded NUL bytes cannot be passed to exec
        logger.warning("Failed to spawn command", command=argv[0], error=e)
        return _failure(f"spawn {argv[0]} EINVAL: {e}", stdout, stderr, "EINVAL")

    overflow: list[bool] = []

    async def _collect() -> int:
        await asyncio.gather(
            _pump(process.stdout, stdout, max_output_bytes, process, overflow),
            _pump(process.stderr, stderr, max_output_bytes, process, overflow),
        )
        return await process.wait()

    try:
        returncode = await asyncio.wait_for(_collect(), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError:
        _kill(process)
        returncode = await process.wait()
        logger.warning("Command timed out", command=argv[0], timeout_ms=timeout_ms)
        return _failure(f"Command timed out after {timeout_ms}ms", stdout, stderr, returncode)

    if overflow:
        logger.warning("Command output exceeded limit", command=argv[0], limit=max_output_bytes)
        return _failure(
            f"Command output exceeded {max_output_bytes} bytes",
            stdout,
            stderr,
            returncode,
        )

    if returncode != 0:
        return _failure(
            f"Command failed with exit code {returncode}: {command}",
            stdout,
            stderr,
            returncode,
        )

    return BashResult(
        success=True,
        data=BashOutput(stdout=_decode(stdout), stderr=_decode(stderr)),
    )
