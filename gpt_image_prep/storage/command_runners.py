"""Command execution utilities for qemu-img and sgdisk.

Commands are always argument vectors, never shell strings, so image paths and
byte counts are passed as data. Each call blocks until the tool exits.
"""

from __future__ import annotations

import subprocess
from typing import Callable, Optional, Sequence

from gpt_image_prep.logging import LoggerFactory
from gpt_image_prep.storage.exceptions import CommandFailedError

CommandRunner = Callable[[Sequence[str]], "subprocess.CompletedProcess[str]"]

log = LoggerFactory.for_command()
output_log = log.bind(tags=["command", "output"])

# Exit status a shell reports for a command it cannot run.
COMMAND_NOT_FOUND = 127


def run_command(command: Sequence[str]) -> subprocess.CompletedProcess[str]:
    """Run a command and capture its output without checking the exit status."""
    command = [str(part) for part in command]
    log.debug(f"Running command: {' '.join(command)}")
    result = subprocess.run(
        command,
        text=True,
        capture_output=True,
    )
    if result.stdout:
        output_log.trace(f"stdout: {result.stdout.strip()}")
    if result.stderr:
        output_log.trace(f"stderr: {result.stderr.strip()}")
    log.debug(f"Command completed with return code {result.returncode}")
    return result


def run_checked_command(
    command: Sequence[str], runner: Optional[CommandRunner] = None
) -> str:
    """Run a command and raise CommandFailedError if it fails.

    A tool that cannot be started at all (missing binary, no execute
    permission) is reported the way a shell would, with exit status 127.

    Returns:
        The captured stdout.
    """
    runner = runner or run_command
    try:
        result = runner(command)
    except OSError as error:
        log.debug(f"Failed to start {command[0]}: {error}")
        raise CommandFailedError(
            [str(part) for part in command], COMMAND_NOT_FOUND, stderr=str(error)
        ) from error
    if result.returncode != 0:
        raise CommandFailedError(
            command, result.returncode, stdout=result.stdout, stderr=result.stderr
        )
    return result.stdout


__all__ = [
    "COMMAND_NOT_FOUND",
    "CommandRunner",
    "run_checked_command",
    "run_command",
]
