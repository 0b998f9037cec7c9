#!/usr/bin/env python3

import click

from pluginrepo.config import load_config, configure_logging
from pluginrepo.commands.tags import tags_handler, show_handler
from pluginrepo.commands.sync import sync_handler, process_handler
from pluginrepo.commands.scan import scan_handler
from pluginrepo.commands.fetch import fetch_handler
from pluginrepo.commands.plugins import plugins_handler
from pluginrepo.commands.config import config_cmd


@click.group()
@click.version_option(package_name="pluginrepo")
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              envvar='PLUGINREPO_CONFIG', help='Config file (JSON, TOML or YAML)')
@click.option('--repo-url', help='GitHub repository URL, e.g. https://github.com/acme/widgets')
@click.option('--root', type=click.Path(file_okay=False), help='Local plugin repository directory')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging on stderr')
@click.pass_context
def cli(ctx, config_path, repo_url, root, verbose):
    """pluginrepo - Mirror GitHub plugin releases into a local plugin repository.

    Downloads the plugin assets of every release, splits them into
    per-platform bundles and keeps track of what has been built.
    """
    obj = ctx.ensure_object(dict)
    obj['config_path'] = config_path
    obj['repo_url'] = repo_url
    obj['root'] = root

    # The config group works on the file itself; others get it loaded
    if ctx.invoked_subcommand != 'config':
        config = load_config(config_path)
        configure_logging(config, verbose)
        obj['config'] = config


# Queries
cli.add_command(tags_handler, name='tags')
cli.add_command(show_handler, name='show')
cli.add_command(plugins_handler, name='plugins')
cli.add_command(fetch_handler, name='fetch')

# Triggers
cli.add_command(sync_handler, name='sync')
cli.add_command(process_handler, name='process')
cli.add_command(scan_handler, name='scan')

cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
