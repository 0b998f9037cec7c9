"""
Handles the 'sync' and 'process' commands.

sync fetches the release listing, reconciles it with local state and
builds every tag that has no packages yet. process builds one tag.
"""

import click

from ..cli_utils import standard_command, print_json, get_repo
from ..domain import OperationSummary
from ..exit_codes import SUCCESS, GENERAL_ERROR, API_ERROR, PARTIAL_SUCCESS
from ..render import render_summary


def summary_exit_code(summary: OperationSummary) -> int:
    if summary.failed == 0:
        return SUCCESS
    if summary.successful or summary.skipped:
        return PARTIAL_SUCCESS
    return GENERAL_ERROR


@click.command(name='sync')
@click.option('--force', is_flag=True, help='Rebuild tags that already have packages')
@click.option('--json', 'as_json', is_flag=True, help='Output the summary as JSON')
@click.pass_context
@standard_command
def sync_handler(ctx, force, as_json):
    """Fetch releases and build plugin packages for new tags.

    \b
    Examples:
        pluginrepo --repo-url https://github.com/acme/widgets sync
        pluginrepo sync --force          # Rebuild everything
    """
    repo = get_repo(ctx)

    if not repo.update():
        click.echo("Error: could not fetch the release listing", err=True)
        return API_ERROR

    summary = repo.process_all(force=force)

    if as_json:
        print_json(summary.to_dict())
    else:
        render_summary(summary)
    return summary_exit_code(summary)


@click.command(name='process')
@click.argument('tag')
@click.option('--force', is_flag=True, help='Rebuild even if the tag already has packages')
@click.pass_context
@standard_command
def process_handler(ctx, tag, force):
    """Download, extract and repackage one TAG.

    The tag must be known locally (see 'pluginrepo tags').
    """
    repo = get_repo(ctx)
    ok = repo.process_tag(tag, force=force)
    result = repo.engine.last_result

    if ok:
        if result is not None and result.skipped:
            click.echo(f"{result.tag_name}: already processed")
        elif result is not None:
            for package_id in result.packages:
                click.echo(f"{result.tag_name}: built {package_id}")
        return SUCCESS

    reason = result.error if result is not None and result.error else "no plugin packages produced"
    click.echo(f"Error: {tag}: {reason}", err=True)
    return GENERAL_ERROR
