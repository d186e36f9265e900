#!/usr/bin/env python3
"""
grit command line.

Anything that is not a grit subcommand is treated as a git command and
replayed in every repository of the workspace::

    grit init
    grit add-repository sproutcore frameworks/sproutcore
    grit status --short
    grit on sproutcore log --oneline -5
"""

import os
from dataclasses import dataclass
from typing import Any, Dict

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from grit import __version__
from grit.cli_utils import handle_errors, get_state
from grit.config import load_settings, configure_logging, logger
from grit.dispatcher import Dispatcher
from grit.registry import Registry

PASSTHROUGH_SETTINGS = {
    'ignore_unknown_options': True,
    'allow_interspersed_args': False,
}


@dataclass
class CliState:
    """Objects shared by every subcommand of one invocation."""
    settings: Dict[str, Any]
    registry: Registry
    console: Console

    def registry_at(self, root) -> Registry:
        """A registry for another root, with the same metadata layout."""
        workspace = self.settings['workspace']
        return Registry(root, workspace['metadata_dir'], workspace['config_file'])

    def dispatcher(self) -> Dispatcher:
        return Dispatcher(
            self.registry,
            console=self.console,
            git_executable=self.settings['git']['executable'],
        )


class GritGroup(click.Group):
    """Command group that sends unknown commands to git in every repository."""

    default_command = 'run'

    def resolve_command(self, ctx, args):
        if args and args[0] not in self.commands:
            return self.default_command, self.commands[self.default_command], args
        return super().resolve_command(ctx, args)


@click.group(cls=GritGroup)
@click.version_option(version=__version__, prog_name='grit')
@click.option('-w', '--workspace', type=click.Path(file_okay=False),
              envvar='GRIT_ROOT', help='Workspace root (default: current directory)')
@click.option('-v', '--verbose', is_flag=True, help='Show debug logging on stderr')
@click.option('--no-color', is_flag=True, help='Disable coloured output')
@click.pass_context
def cli(ctx, workspace, verbose, no_color):
    """grit - Run git commands across a workspace of repositories.

    Any command that is not listed below is passed to git and run in every
    registered repository, plus the workspace root unless ignore_root is set.
    """
    settings = load_settings()
    configure_logging(settings, verbose)

    root = workspace or os.getcwd()
    workspace_settings = settings['workspace']
    color = settings['output']['color'] and not no_color
    ctx.obj = CliState(
        settings=settings,
        registry=Registry(root, workspace_settings['metadata_dir'], workspace_settings['config_file']),
        console=Console(no_color=not color, highlight=False),
    )
    logger.debug(f"Workspace root: {ctx.obj.registry.root}")


@cli.command('help')
@click.pass_context
def help_cmd(ctx):
    """Show this message."""
    click.echo(ctx.find_root().get_help())


@cli.command('version')
def version_cmd():
    """Print the grit version."""
    click.echo(f"grit {__version__}")


@cli.command('init')
@click.argument('directory', required=False)
@click.pass_context
@handle_errors
def init_cmd(ctx, directory):
    """Create a workspace in DIRECTORY (default: current directory)."""
    state = get_state(ctx)
    registry = state.registry_at(directory) if directory else state.registry

    if registry.initialize():
        click.echo(f"Initialized empty grit workspace in {registry.metadata_dir}")
    else:
        click.echo(f"grit workspace already exists in {registry.metadata_dir}")


@cli.command('add-repository')
@click.argument('name')
@click.argument('path', required=False)
@click.pass_context
@handle_errors
def add_repository_cmd(ctx, name, path):
    """Register repository NAME at PATH (default: NAME).

    \b
    Examples:
        grit add-repository sproutcore frameworks/sproutcore
        grit add-repository docs
    """
    state = get_state(ctx)
    repo = state.registry.add_repository(name, path)
    state.console.print(
        f"[green]✓[/green] Added repository [cyan]{escape(repo.name)}[/cyan] ({escape(repo.path)})",
        soft_wrap=True,
    )


@cli.command('add-all')
@click.pass_context
@handle_errors
def add_all_cmd(ctx):
    """Register every git repository directly under the workspace root."""
    state = get_state(ctx)
    added = state.registry.add_all_discovered()

    if not added:
        state.console.print("[dim]No git repositories found under the workspace root[/dim]")
        return
    for repo in added:
        state.console.print(f"[green]✓[/green] Added repository [cyan]{escape(repo.name)}[/cyan]")
    state.console.print(f"\n[dim]Total:[/dim] {len(added)} repositories added")


@cli.command('remove-repository')
@click.argument('name')
@click.pass_context
@handle_errors
def remove_repository_cmd(ctx, name):
    """Deregister the first repository called NAME."""
    state = get_state(ctx)
    state.registry.remove_repository(name)
    state.console.print(f"[green]✓[/green] Removed repository [cyan]{escape(name)}[/cyan] from grit")


@cli.command('config')
@click.option('--table', 'as_table', is_flag=True, help='Show repositories as a table')
@click.pass_context
@handle_errors
def config_cmd(ctx, as_table):
    """Show the workspace config, including the Root entry when it is used."""
    state = get_state(ctx)
    workspace = state.registry.load()

    if not as_table:
        click.echo(yaml.safe_dump(workspace.effective_dict(), default_flow_style=False, sort_keys=False),
                   nl=False)
        return

    table = Table(show_header=True, header_style="bold cyan", title=f"grit workspace {workspace.root}")
    table.add_column("#", style="dim", width=4)
    table.add_column("Name", style="green")
    table.add_column("Path")
    table.add_column("Valid", justify="center")

    for i, repo in enumerate(workspace.members):
        valid = "[green]yes[/green]" if state.registry.is_valid(repo) else "[red]no[/red]"
        table.add_row(str(i), escape(repo.name), escape(repo.path), valid)

    state.console.print(table)
    state.console.print(f"\n[dim]ignore_root:[/dim] {str(workspace.ignore_root).lower()}")


@cli.command('clean-config')
@click.pass_context
@handle_errors
def clean_config_cmd(ctx):
    """Drop repositories whose path is no longer a git working copy."""
    state = get_state(ctx)
    dropped = state.registry.clean_missing()

    if not dropped:
        state.console.print("[green]All repositories are valid[/green]")
        return
    for repo in dropped:
        state.console.print(
            f"[yellow]Removed[/yellow] {escape(repo.name)} ({escape(repo.path)})", soft_wrap=True
        )


@cli.command('convert-config')
@click.pass_context
@handle_errors
def convert_config_cmd(ctx):
    """Migrate a legacy workspace config to the current format."""
    state = get_state(ctx)
    if state.registry.convert_legacy():
        state.console.print(f"[green]✓[/green] Converted {escape(str(state.registry.config_path))}")
    else:
        state.console.print("[dim]Config is already in the current format[/dim]")


@cli.command('destroy')
@click.argument('directory', required=False)
@click.option('--yes', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
@handle_errors
def destroy_cmd(ctx, directory, yes):
    """Delete the workspace metadata in DIRECTORY (default: current directory).

    Repositories themselves are not touched.
    """
    state = get_state(ctx)
    registry = state.registry_at(directory) if directory else state.registry

    if not yes:
        if not click.confirm(f"Delete grit workspace metadata in {registry.metadata_dir}?"):
            state.console.print("[dim]Cancelled[/dim]")
            return

    registry.destroy()
    state.console.print(f"[green]✓[/green] Removed {escape(str(registry.metadata_dir))}")


@cli.command('on', context_settings=PASSTHROUGH_SETTINGS)
@click.argument('repo_name')
@click.argument('command_args', nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@handle_errors
def on_cmd(ctx, repo_name, command_args):
    """Run a git command in the single repository REPO_NAME.

    \b
    Examples:
        grit on sproutcore log --oneline -5
        grit on Root status
    """
    state = get_state(ctx)
    result = state.dispatcher().run_on(repo_name, command_args)
    if not result.ok:
        click.secho(f"{repo_name}: exit status {result.exit_code}", fg="red", err=True)


@cli.command('run', hidden=True, context_settings=PASSTHROUGH_SETTINGS)
@click.argument('command_args', nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@handle_errors
def run_cmd(ctx, command_args):
    """Run a git command in every repository of the workspace."""
    state = get_state(ctx)
    summary = state.dispatcher().run_all(command_args)

    if summary.skipped or summary.failed:
        state.console.print(
            f"[dim]Ran in {summary.ran} of {summary.total} repositories "
            f"({summary.failed} failed, {summary.skipped} skipped)[/dim]"
        )


def main():
    cli()


if __name__ == "__main__":
    main()
