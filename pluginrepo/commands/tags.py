"""
Handles the 'tags' and 'show' commands for inspecting known release tags.
"""

import click

from ..cli_utils import standard_command, print_json, get_repo
from ..errors import NotFoundError
from ..render import render_tags_table


@click.command(name='tags')
@click.option('--json', 'as_json', is_flag=True, help='Output tag documents as JSON')
@click.pass_context
@standard_command
def tags_handler(ctx, as_json):
    """List release tags known to the local repository.

    Shows what is persisted locally; run 'pluginrepo sync' first to pick
    up new releases.
    """
    repo = get_repo(ctx)
    documents = [repo.get_tag(name) for name in repo.list_tags()]
    documents = [d for d in documents if d is not None]

    if as_json:
        print_json(documents)
    else:
        render_tags_table(documents)


@click.command(name='show')
@click.argument('tag')
@click.pass_context
@standard_command
def show_handler(ctx, tag):
    """Print the full JSON document of one TAG."""
    document = get_repo(ctx).get_tag(tag)
    if document is None:
        raise NotFoundError(f"Tag {tag} not found")
    print_json(document)
