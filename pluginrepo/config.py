"""
Configuration for pluginrepo: defaults, config files and PLUGINREPO_* overrides.
"""

import os
import json
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

import logging
import sys

import yaml

logger = logging.getLogger("pluginrepo")

CONFIG_FILENAMES = ['config.json', 'config.toml', 'config.yaml', 'config.yml']


def configure_logging(config: Optional[Dict[str, Any]] = None, verbose: bool = False) -> None:
    """
    Configure the pluginrepo logger from the ``logging`` config section.

    Logs go to stderr so stdout stays clean for JSON output.
    """
    section = (config or {}).get("logging", {})
    level_name = "DEBUG" if verbose else str(section.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format=section.get("format", "%(levelname)s: %(message)s"),
        handlers=[
            logging.StreamHandler(sys.stderr)  # Default to stderr
        ],
        force=True,
    )
    logger.setLevel(level)


def get_config_path() -> Path:
    """
    Locate the config file.

    ``PLUGINREPO_CONFIG`` wins when it names an existing file. Otherwise the
    first non-trivial ``~/.pluginrepo/config.{json,toml,yaml,yml}`` is used,
    falling back to ``~/.pluginrepo/config.json`` as the place to save.
    """
    explicit = os.environ.get('PLUGINREPO_CONFIG')
    if explicit and Path(explicit).exists():
        return Path(explicit)

    config_dir = Path.home() / '.pluginrepo'
    candidates = [config_dir / name for name in CONFIG_FILENAMES]
    for candidate in candidates:
        if candidate.is_file() and candidate.stat().st_size > 10:
            return candidate
    return candidates[0]


def _read_config_file(config_path: Path) -> Any:
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    with open(config_path, 'r', encoding='utf-8') as f:
        if suffix in ('.yaml', '.yml'):
            return yaml.safe_load(f) or {}
        return json.load(f)


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Build the effective configuration.

    Defaults, then the config file (JSON, TOML or YAML by suffix), then
    ``PLUGINREPO_*`` environment variables. A broken file is logged and
    ignored rather than aborting startup.
    """
    path = Path(config_path).expanduser() if config_path else get_config_path()
    config = get_default_config()

    if path.exists():
        try:
            from_file = _read_config_file(path)
        except (OSError, ValueError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
            logger.error(f"Cannot read config {path}: {e}")
        else:
            if isinstance(from_file, dict):
                config = merge_configs(config, from_file)
            else:
                logger.error(f"Ignoring config {path}: top level must be a mapping")

    return apply_env_overrides(config)


def save_config(config: Dict[str, Any], config_path: Optional[Union[str, Path]] = None) -> Path:
    """
    Write ``config`` as YAML or JSON depending on the suffix.

    tomllib cannot write, so a ``.toml`` target is saved beside it as
    ``.json``. Returns the path actually written.
    """
    path = Path(config_path).expanduser() if config_path else get_config_path()
    if path.suffix.lower() == '.toml':
        logger.warning(f"Cannot write TOML, saving {path.with_suffix('.json')} instead")
        path = path.with_suffix('.json')

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        if path.suffix.lower() in ('.yaml', '.yml'):
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(config, f, indent=2)
            f.write('\n')

    logger.info(f"Configuration saved to {path}")
    return path


def get_default_config():
    """Get default configuration."""
    return {
        "repository": {
            "url": "",                  # https://github.com/<owner>/<repo>
            "root": "plugin_repo",      # Local repository directory
        },
        "github": {
            "token": "",
            "api_url": "https://api.github.com",
            "per_page": 100,
            "max_pages": 10,
            "timeout_seconds": 30,
        },
        "download": {
            "max_attempts": 3,
            "retry_delay_seconds": 5,
            "connect_timeout_seconds": 10,
            "read_timeout_seconds": 30,
            "max_concurrent": 0,        # 0 = one worker per asset
            "chunk_size": 65536,
        },
        "filters": {
            "plugin_marker": "plugin",
            "server_marker": "server",
            "archive_extensions": [".zip"],
        },
        "limits": {
            "max_path_length": 260,
            "max_dir_length": 200,
            "max_api_path_length": 200,
        },
        "scan": {
            "interval_seconds": 900,
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        },
    }


def merge_configs(base_config, override_config):
    """Deep-merge ``override_config`` over ``base_config`` without mutating either."""
    merged = dict(base_config)
    for key, value in override_config.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_configs(current, value)
        else:
            merged[key] = value
    return merged


ENV_PREFIX = "PLUGINREPO_"


def _coerce_env_value(raw: str) -> Any:
    lowered = raw.lower()
    if lowered in ('true', 'yes', 'on'):
        return True
    if lowered in ('false', 'no', 'off'):
        return False
    if raw.isdigit():
        return int(raw)
    return raw


def _assign_env_path(section: Dict[str, Any], words, value: Any) -> bool:
    """
    Walk ``words`` down ``section`` and set the leaf.

    Config keys may themselves contain underscores (``max_attempts``), so at
    each level the longest key whose words prefix the remainder wins.
    """
    candidates = sorted(
        (key for key in section if words[:len(key.split('_'))] == key.split('_')),
        key=lambda key: len(key.split('_')),
        reverse=True,
    )
    if not candidates:
        return False

    key = candidates[0]
    rest = words[len(key.split('_')):]
    if not rest:
        section[key] = value
        return True
    if isinstance(section[key], dict):
        return _assign_env_path(section[key], rest, value)
    return False


def apply_env_overrides(config):
    """
    Apply ``PLUGINREPO_<SECTION>_<KEY>`` environment variables.

    Example: PLUGINREPO_DOWNLOAD_MAX_ATTEMPTS=5 sets download.max_attempts.
    Variables that name no existing key are ignored.
    """
    for name, raw in os.environ.items():
        if not name.startswith(ENV_PREFIX) or name == "PLUGINREPO_CONFIG":
            continue
        words = name[len(ENV_PREFIX):].lower().split('_')
        if not _assign_env_path(config, words, _coerce_env_value(raw)):
            logger.debug(f"Ignoring {name}: no matching config key")
    return config


def get_github_token(config: Dict[str, Any]) -> Optional[str]:
    """Token from config, then PLUGINREPO_GITHUB_TOKEN / GITHUB_TOKEN."""
    token = config.get("github", {}).get("token")
    return token or os.environ.get('PLUGINREPO_GITHUB_TOKEN') or os.environ.get('GITHUB_TOKEN') or None
