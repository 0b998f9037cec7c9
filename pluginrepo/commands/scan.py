"""
Handles the 'scan' command: keep the local repository in sync in the
foreground until interrupted.
"""

import time

import click

from ..cli_utils import standard_command, get_repo
from ..exit_codes import SUCCESS, API_ERROR
from ..render import render_summary
from .sync import summary_exit_code


@click.command(name='scan')
@click.option('--interval', type=click.IntRange(min=1), default=None,
              help='Seconds between scans (default: scan.interval_seconds, 900)')
@click.option('--once', is_flag=True, help='Run a single scan cycle and exit')
@click.pass_context
@standard_command
def scan_handler(ctx, interval, once):
    """Periodically fetch releases and build new tags.

    Runs until Ctrl+C. In-flight downloads finish before the scanner stops.

    \b
    Examples:
        pluginrepo scan                  # Every 15 minutes
        pluginrepo scan --interval 60
        pluginrepo scan --once           # Same as 'sync'
    """
    repo = get_repo(ctx)

    if once:
        summary = repo.sync()
        if summary is None:
            click.echo("Error: could not fetch the release listing", err=True)
            return API_ERROR
        render_summary(summary)
        return summary_exit_code(summary)

    if interval is None:
        interval = repo.config['scan'].get('interval_seconds', 900)

    repo.start_scan(interval)
    click.echo(f"Scanning {repo.repo_url or '(no repository URL)'} every {interval}s, Ctrl+C to stop", err=True)
    try:
        while repo.scanning:
            time.sleep(1)
    finally:
        repo.stop_scan()
    return SUCCESS
