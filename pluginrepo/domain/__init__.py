"""
Domain layer for pluginrepo.

Contains pure domain objects with no I/O or side effects:
- TagRecord: A release tag with its assets and built packages
- AssetRecord / PluginPackageRecord / ToolRecord: what a tag contains
- OperationSummary: Outcome of a bulk processing pass

These objects provide serialization methods for the persisted JSON files.
"""

from .release import (
    Platform,
    AssetRecord,
    ToolRecord,
    PluginPackageRecord,
    TagRecord,
    make_plugin_id,
)
from .operation import (
    OperationStatus,
    OperationDetail,
    OperationSummary,
    TagProcessResult,
)

__all__ = [
    'Platform',
    'AssetRecord',
    'ToolRecord',
    'PluginPackageRecord',
    'TagRecord',
    'make_plugin_id',
    'OperationStatus',
    'OperationDetail',
    'OperationSummary',
    'TagProcessResult',
]
