"""
grit - Run one git command across a workspace of independent repositories.

A workspace is a root directory holding a ``.grit/config.yml`` document that
lists repositories by name and path. Every grit invocation either edits that
list or replays a git command inside each listed repository.

Quick Start:
    from grit import Registry, Dispatcher

    registry = Registry("~/my_project")
    registry.initialize()
    registry.add_repository("lib", "vendor/lib")

    dispatcher = Dispatcher(registry)
    summary = dispatcher.run_all(["status", "--short"])
    print(summary.ran, summary.skipped)
"""

__version__ = "0.3.0"

from .registry import Registry, Repository, Workspace
from .dispatcher import Dispatcher, DispatchSummary, build_command_line
from .runner import CommandRunner, CommandResult, SubprocessRunner

__all__ = [
    "__version__",
    "Registry",
    "Repository",
    "Workspace",
    "Dispatcher",
    "DispatchSummary",
    "build_command_line",
    "CommandRunner",
    "CommandResult",
    "SubprocessRunner",
]
