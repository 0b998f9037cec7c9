import click
from pathlib import Path
import json

from pluginrepo.config import get_config_path, get_default_config, load_config, save_config


def _config_path(ctx):
    """Config file from the global --config option, else the default lookup."""
    obj = ctx.find_root().obj or {}
    if obj.get('config_path'):
        return Path(obj['config_path']).expanduser()
    return get_config_path()


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSON")
@click.option("--path", is_flag=True, help="Show the config file path being used")
@click.pass_context
def show_config(ctx, pretty, path):
    """Show the current configuration with all merges applied.

    By default, outputs single-line JSON.
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    """
    config_path = _config_path(ctx)

    if path:
        click.echo(json.dumps({"config_path": str(config_path)}))
        return

    config = load_config(config_path)
    # Never echo secrets
    if config.get("github", {}).get("token"):
        config["github"]["token"] = "***"

    if pretty:
        click.echo(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        click.echo(json.dumps(config, ensure_ascii=False))


@config_cmd.command("init")
@click.option("--repo-url", default="", help="Repository URL to write into the new config")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init_config(ctx, repo_url, force):
    """Write a config file populated with the defaults."""
    config_path = _config_path(ctx)
    if config_path.exists() and not force:
        raise click.ClickException(f"{config_path} already exists (use --force to overwrite)")

    config = get_default_config()
    if repo_url:
        config["repository"]["url"] = repo_url

    written = save_config(config, config_path)
    click.echo(f"Configuration written to {written}")
