"""
Service layer for pluginrepo.

Contains business logic that orchestrates domain objects and infrastructure:
- ReleaseFetcher: Release listing to TagRecords
- TagStateStore / PluginIndex: Guarded tag state and its persistence
- Repackager: Binary+manifest pairs to per-platform bundles
- SyncEngine: Tag processing orchestration
- ScanScheduler: Periodic background sync

Services are the primary API for commands to use.
"""

from .release_service import (
    ReleaseFetcher,
    RepoRef,
    parse_repo_url,
    is_plugin_asset,
    platform_from_filename,
)
from .tag_store import TagStateStore, PluginIndex
from .repackage_service import Repackager, RepackageResult, parse_manifest
from .sync_service import SyncEngine
from .scan_scheduler import ScanScheduler

__all__ = [
    'ReleaseFetcher',
    'RepoRef',
    'parse_repo_url',
    'is_plugin_asset',
    'platform_from_filename',
    'TagStateStore',
    'PluginIndex',
    'Repackager',
    'RepackageResult',
    'parse_manifest',
    'SyncEngine',
    'ScanScheduler',
]
