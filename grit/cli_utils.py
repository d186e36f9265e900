"""
Common CLI utilities and decorators for consistent command behavior.
"""

import sys
import click
from functools import wraps

from .exit_codes import INTERRUPTED, CommandError, get_exit_code_for_exception


def handle_errors(func):
    """
    Decorator that turns grit errors into a diagnostic and an exit code.

    - CommandError: message on stderr, exit with the error's code
    - click exceptions: left to click
    - KeyboardInterrupt: exit with INTERRUPTED
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except KeyboardInterrupt:
            click.secho("Interrupted by user", fg="red", err=True)
            sys.exit(INTERRUPTED)
        except CommandError as e:
            click.secho(f"Error: {e}", fg="red", err=True)
            sys.exit(e.exit_code)
        except OSError as e:
            click.secho(f"Error: {e}", fg="red", err=True)
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


def get_state(ctx: click.Context):
    """Return the shared :class:`CliState` stored on the root context."""
    return ctx.find_root().obj
