"""
Command execution for grit.

Every command grit replays goes through a :class:`CommandRunner`, which makes
the dispatcher easy to test without a real git binary.
"""

import logging
import os
import subprocess
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Protocol, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Combined stdout/stderr of one command and its exit status."""
    output: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner(Protocol):
    """Anything that can run a shell command line in a directory."""

    def run(self, working_dir: Union[str, Path], command_line: str) -> CommandResult:
        ...


class SubprocessRunner:
    """
    Runs command lines through the shell and waits for them to exit.

    stderr is merged into stdout so output keeps its original interleaving.
    Bytes that are not valid UTF-8 are replaced rather than failing the run.
    There is no timeout.
    """

    def run(self, working_dir: Union[str, Path], command_line: str) -> CommandResult:
        logger.debug(f"Running command in '{working_dir}': {command_line}")
        try:
            result = subprocess.run(
                command_line,
                shell=True,
                cwd=str(working_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as e:
            logger.error(f"Could not start command '{command_line}': {e}")
            return CommandResult(output=f"Error: {e}\n", exit_code=-1)

        if result.returncode != 0:
            logger.debug(f"Command exited with {result.returncode}: {command_line}")
        return CommandResult(output=result.stdout or "", exit_code=result.returncode)


@contextmanager
def working_directory(path: Union[str, Path]) -> Iterator[Path]:
    """Change into ``path`` and always change back to the previous directory."""
    previous = os.getcwd()
    os.chdir(path)
    try:
        yield Path(path)
    finally:
        os.chdir(previous)
