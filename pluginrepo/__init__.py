"""
pluginrepo - Mirror GitHub plugin releases into a local plugin repository.

pluginrepo watches the releases of one GitHub repository, downloads the
plugin archives attached to them, and repackages every plugin binary with
its tool manifest into a per-platform bundle under a local directory.

Quick Start:
    import pluginrepo

    # Create instance (uses config defaults)
    repo = pluginrepo.PluginRepo(repo_url="https://github.com/acme/widgets")

    # Fetch releases and build new tags
    summary = repo.sync()
    print(summary.successful, "tags built")

    # Inspect results
    for tag in repo.list_tags():
        print(repo.get_tag(tag))

    # Keep syncing in the background
    repo.start_scan(900)
    ...
    repo.close()

Layout of the local repository:
    plugin_repo/
        plugins.json                          - Plugin index with tools
        v1.2.0.json                           - Tag document
        v1.2.0/widgets-plugin-windows.zip     - Downloaded asset
        v1.2.0/windows/widgets_v1.2.0_<ts>.zip - Built package
"""

__version__ = "0.3.0"

# High-level API
from .api import PluginRepo, PackageDownload, create

# Domain objects
from .domain import (
    Platform,
    AssetRecord,
    ToolRecord,
    PluginPackageRecord,
    TagRecord,
    OperationSummary,
)

# Services (for advanced use)
from .services import (
    SyncEngine,
    ScanScheduler,
    TagStateStore,
    ReleaseFetcher,
    Repackager,
    parse_repo_url,
    is_plugin_asset,
)

from .sanitize import sanitize
from .errors import PluginRepoError

# Configuration
from .config import load_config, save_config

__all__ = [
    # Version
    "__version__",
    # High-level API
    "PluginRepo",
    "PackageDownload",
    "create",
    # Domain objects
    "Platform",
    "AssetRecord",
    "ToolRecord",
    "PluginPackageRecord",
    "TagRecord",
    "OperationSummary",
    # Services
    "SyncEngine",
    "ScanScheduler",
    "TagStateStore",
    "ReleaseFetcher",
    "Repackager",
    "parse_repo_url",
    "is_plugin_asset",
    # Utilities
    "sanitize",
    "PluginRepoError",
    # Configuration
    "load_config",
    "save_config",
]
