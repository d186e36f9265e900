"""
Command fan-out for grit.

Replays one git command inside each workspace member, strictly in order and
one at a time. A member whose directory is missing is reported and skipped;
a command that exits non-zero is reported and the batch carries on.
"""

import logging
import os
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from .exit_codes import RepoNotFoundError
from .registry import Registry, Repository
from .runner import CommandResult, CommandRunner, SubprocessRunner, working_directory

logger = logging.getLogger(__name__)


def build_command_line(args: Sequence[str]) -> str:
    """
    Join command tokens into one shell command line.

    Tokens containing whitespace are shell-quoted so they reach git as a
    single argument; everything else is passed through as typed.
    """
    parts = []
    for arg in args:
        if any(ch.isspace() for ch in arg):
            parts.append(shlex.quote(arg))
        else:
            parts.append(arg)
    return ' '.join(parts)


class RunStatus(Enum):
    """Outcome of the command for one repository."""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class RunDetail:
    """What happened in one repository during a fan-out."""
    repo_name: str
    repo_path: str
    status: RunStatus
    exit_code: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'name': self.repo_name,
            'path': self.repo_path,
            'status': self.status.value,
        }
        if self.exit_code is not None:
            result['exit_code'] = self.exit_code
        if self.message:
            result['message'] = self.message
        return result


@dataclass
class DispatchSummary:
    """Summary of one command replayed across the workspace."""
    command_line: str
    details: List[RunDetail] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.details)

    @property
    def ran(self) -> int:
        return sum(1 for d in self.details if d.status != RunStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return sum(1 for d in self.details if d.status == RunStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for d in self.details if d.status == RunStatus.SKIPPED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'command': self.command_line,
            'total': self.total,
            'ran': self.ran,
            'failed': self.failed,
            'skipped': self.skipped,
            'details': [d.to_dict() for d in self.details],
        }


class Dispatcher:
    """
    Runs git commands in workspace members.

    Example:
        dispatcher = Dispatcher(Registry("."))
        summary = dispatcher.run_all(["pull", "--rebase"])
        if summary.skipped:
            print(f"{summary.skipped} repositories were unreachable")
    """

    def __init__(
        self,
        registry: Registry,
        runner: Optional[CommandRunner] = None,
        console: Optional[Console] = None,
        git_executable: str = "git",
    ):
        self.registry = registry
        self.runner = runner or SubprocessRunner()
        self.console = console or Console()
        self.git_executable = git_executable

    def _git_command(self, command_line: str) -> str:
        if not command_line:
            return self.git_executable
        return f"{self.git_executable} {command_line}"

    def _relay(self, output: str) -> None:
        if not output:
            return
        stream = self.console.file
        stream.write(output)
        if not output.endswith("\n"):
            stream.write("\n")
        stream.flush()

    def run_on(self, repo_name: str, args: Sequence[str]) -> CommandResult:
        """
        Run a command in the single member named ``repo_name``.

        Raises:
            RepoNotFoundError: if no member has that name or its directory is missing
        """
        workspace = self.registry.load()
        repo = next((m for m in workspace.members if m.name == repo_name), None)
        if repo is None:
            raise RepoNotFoundError(repo_name)

        path = self.registry.resolve(repo)
        if not os.path.isdir(path):
            raise RepoNotFoundError(repo_name, str(path))

        command = self._git_command(build_command_line(args))
        logger.info(f"Running '{command}' in {repo.name}")
        with working_directory(path):
            result = self.runner.run(path, command)

        self._relay(result.output)
        return result

    def run_all(self, args: Sequence[str]) -> DispatchSummary:
        """Run a command in every member, in order, skipping unreachable ones."""
        workspace = self.registry.load()
        command_line = build_command_line(args)
        command = self._git_command(command_line)
        summary = DispatchSummary(command_line=command_line)

        for repo in workspace.members:
            summary.details.append(self._run_member(repo, command))

        logger.info(
            f"Ran '{command}' in {summary.ran} of {summary.total} repositories "
            f"({summary.failed} failed, {summary.skipped} skipped)"
        )
        return summary

    def _skip(self, repo: Repository, path, reason: str) -> RunDetail:
        logger.warning(f"Skipping {repo.name}: {reason} ({path})")
        self.console.print(
            f"[yellow]Skipping {escape(repo.name)}:[/yellow] "
            f"{escape(reason)} ({escape(str(path))})",
            soft_wrap=True,
        )
        return RunDetail(
            repo_name=repo.name,
            repo_path=str(path),
            status=RunStatus.SKIPPED,
            message=reason,
        )

    def _run_member(self, repo: Repository, command: str) -> RunDetail:
        path = self.registry.resolve(repo)

        # os.path.isdir is False for any stat error (EACCES, ENAMETOOLONG, ...)
        if not os.path.isdir(path):
            return self._skip(repo, path, "path not found")

        try:
            with working_directory(path):
                result = self.runner.run(path, command)
        except OSError as e:
            return self._skip(repo, path, f"cannot enter directory: {e.strerror or e}")

        self.console.rule(f"[bold cyan]{escape(repo.name.upper())}[/bold cyan]")
        self._relay(result.output)
        if not result.ok:
            self.console.print(
                f"[red]{escape(repo.name)}: exit status {result.exit_code}[/red]",
                soft_wrap=True,
            )
        self.console.rule(style="dim")

        return RunDetail(
            repo_name=repo.name,
            repo_path=str(path),
            status=RunStatus.SUCCESS if result.ok else RunStatus.FAILED,
            exit_code=result.exit_code,
        )
