from __future__ import annotations

from dataclasses import dataclass
import logging
import subprocess
from typing import Callable

logger = logging.getLogger(__name__)

CommandRunner = Callable[[list[str], float], subprocess.CompletedProcess[str]]


@dataclass(frozen=True)
class CommandResult:
    command: list[str]
    returncode: int
    stdout: str
    stderr: str


class CommandError(RuntimeError):
    def __init__(self, *, message: str, result: CommandResult) -> None:
        self.result = result
        super().__init__(self._build_message(message))

    def _build_message(self, message: str) -> str:
        detail = (self.result.stderr or self.result.stdout).strip()
        if len(detail) > 400:
            detail = f"{detail[:397]}..."
        return f"{message} (returncode={self.result.returncode}, detail={detail!r})"


class CommandTimeout(RuntimeError):
    def __init__(self, *, message: str, command: list[str], timeout: float) -> None:
        self.command = command
        self.timeout = timeout
        super().__init__(f"{message} (timed out after {timeout:g}s)")


def default_runner(command: list[str], timeout: float) -> subprocess.CompletedProcess[str]:
    return subprocess.run(command, capture_output=True, text=True, check=False, timeout=timeout)


def run_command(
    command: list[str],
    *,
    timeout: float,
    runner: CommandRunner | None = None,
    error_message: str,
) -> CommandResult:
    active_runner = runner or default_runner
    logger.debug("Running command with timeout=%ss: %s", timeout, " ".join(command))
    try:
        completed = active_runner(command, timeout)
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeout(message=error_message, command=command, timeout=timeout) from exc
    except FileNotFoundError as exc:
        raise CommandError(
            message=error_message,
            result=CommandResult(command=command, returncode=127, stdout="", stderr=str(exc)),
        ) from exc

    result = CommandResult(
        command=command,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if result.returncode != 0:
        raise CommandError(message=error_message, result=result)
    return result
