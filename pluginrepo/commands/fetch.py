"""
Handles the 'fetch' command: copy a built plugin package out of the
local repository, the way a download client would receive it.
"""

from pathlib import Path

import click

from ..cli_utils import standard_command, get_repo


@click.command(name='fetch')
@click.argument('tag')
@click.argument('platform', type=click.Choice(['windows', 'linux'], case_sensitive=False))
@click.argument('package')
@click.option('-o', '--output', 'output_dir', type=click.Path(file_okay=False, path_type=Path),
              default='.', show_default=True, help='Directory to write the package to')
@click.pass_context
@standard_command
def fetch_handler(ctx, tag, platform, package, output_dir):
    """Copy PACKAGE of TAG for PLATFORM into the output directory.

    \b
    Example:
        pluginrepo fetch v1.2.0 windows widgets_v1.2.0_1714564800.zip -o dist/
    """
    download = get_repo(ctx).open_package(tag, platform, package)

    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / download.filename
    with open(target, 'wb') as f:
        for chunk in download.iter_chunks():
            f.write(chunk)

    click.echo(str(target))
