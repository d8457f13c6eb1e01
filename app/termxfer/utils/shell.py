"""Command execution for the local pane.

Remote adapters report their ``exec`` results with the same CommandResult.
"""

import logging
import os
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of one command."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr, as shown to the user."""
        return self.stdout + self.stderr


def shell_args(command: str) -> list[str]:
    """Wrap ``command`` for the platform shell (``$SHELL -c`` or ``cmd /C``)."""
    if os.name == "nt":
        return [os.environ.get("COMSPEC", "cmd.exe"), "/C", command]
    return [os.environ.get("SHELL") or "/bin/sh", "-c", command]


def run_command(
    args: list[str],
    *,
    cwd: str | None = None,
    timeout: float | None = 60.0,
) -> CommandResult:
    """Run ``args`` detached from the terminal and capture its output.

    Undecodable output bytes are replaced rather than raising. A non-zero
    exit status is reported in the result, not raised.

    Raises:
        subprocess.TimeoutExpired: The command ran past ``timeout`` seconds.
        OSError: The executable could not be started.
    """
    logger.debug("Running %s in %s", args, cwd or os.getcwd())
    completed = subprocess.run(
        args,
        capture_output=True,
        text=True,
        errors="replace",
        stdin=subprocess.DEVNULL,
        check=False,
        timeout=timeout,
        cwd=cwd,
    )
    return CommandResult(completed.stdout, completed.stderr, completed.returncode)


def run_shell(
    command: str,
    *,
    cwd: str | None = None,
    timeout: float | None = 60.0,
) -> CommandResult:
    """Run a command line through the user's shell."""
    return run_command(shell_args(command), cwd=cwd, timeout=timeout)
