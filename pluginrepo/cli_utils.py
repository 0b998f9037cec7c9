"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import sys
import click
from functools import wraps

from .exit_codes import (
    SUCCESS, INTERRUPTED,
    exit_with_code, get_exit_code_for_exception,
)
from .errors import PluginRepoError


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Commands return an exit code (None means success)
    - Library errors become a message on stderr and a mapped exit code
    - Ctrl+C exits with the interrupted code
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            code = func(*args, **kwargs)
        except KeyboardInterrupt:
            exit_with_code(INTERRUPTED, "Interrupted by user")
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except PluginRepoError as e:
            exit_with_code(get_exit_code_for_exception(e), f"Error: {e}")
        except OSError as e:
            exit_with_code(get_exit_code_for_exception(e), f"Error: {e}")
        sys.exit(code or SUCCESS)

    return wrapper


def print_json(data) -> None:
    """Write one JSON document to stdout."""
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def get_repo(ctx: click.Context):
    """PluginRepo for the invocation, built once from the global options."""
    obj = ctx.find_root().ensure_object(dict)
    if obj.get('repo') is None:
        from .api import PluginRepo
        obj['repo'] = PluginRepo(
            repo_url=obj.get('repo_url'),
            repo_root=obj.get('root'),
            config=obj.get('config'),
        )
        ctx.find_root().call_on_close(obj['repo'].close)
    return obj['repo']
