"""
Handles the 'plugins' command for listing built plugin packages.
"""

import click

from ..cli_utils import standard_command, print_json, get_repo
from ..render import render_plugins_table


@click.command(name='plugins')
@click.option('--json', 'as_json', is_flag=True, help='Output the plugin index as JSON')
@click.pass_context
@standard_command
def plugins_handler(ctx, as_json):
    """List every plugin package built so far, with its tools."""
    plugins = get_repo(ctx).plugins()
    if as_json:
        print_json(plugins)
    else:
        render_plugins_table(plugins)
