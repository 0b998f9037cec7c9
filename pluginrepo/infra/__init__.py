"""
Infrastructure layer for pluginrepo.

Contains abstractions for external systems:
- GitHubClient: GitHub releases API access
- AssetDownloader: HTTP downloads with retry
- ArchiveExtractor: zip extraction and bundling
- FileStore / TagFileStore: JSON file persistence

These provide clean interfaces that can be mocked for testing.
"""

from .github_client import GitHubClient, GitHubRelease, GitHubAsset, RateLimitStatus
from .downloader import AssetDownloader
from .archive import ArchiveExtractor, ExtractionResult, write_zip
from .file_store import FileStore, TagFileStore, write_json_atomic

__all__ = [
    'GitHubClient',
    'GitHubRelease',
    'GitHubAsset',
    'RateLimitStatus',
    'AssetDownloader',
    'ArchiveExtractor',
    'ExtractionResult',
    'write_zip',
    'FileStore',
    'TagFileStore',
    'write_json_atomic',
]
