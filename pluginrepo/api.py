"""
High-level Python API for pluginrepo.

Wires the configured components together once and exposes the operations
a server or the CLI needs.

Example:
    import pluginrepo

    with pluginrepo.PluginRepo(repo_url="https://github.com/acme/widgets") as repo:
        # Fetch releases and build every new tag
        summary = repo.sync()

        for tag in repo.list_tags():
            print(tag, repo.get_tag(tag)["plugin_packages"].keys())

        # Serve a package
        download = repo.open_package("v1.2.0", "windows", "widgets_v1.2.0_1714564800.zip")
        for chunk in download.iter_chunks():
            ...

        # Keep syncing in the background
        repo.start_scan(900)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
import logging

import requests

from .config import load_config, get_default_config, merge_configs, get_github_token
from .domain import OperationSummary, Platform
from .errors import InvalidInputError, InvalidURLError, NotFoundError
from .infra import ArchiveExtractor, AssetDownloader, GitHubClient
from .sanitize import sanitize
from .services import (
    PluginIndex,
    ReleaseFetcher,
    Repackager,
    ScanScheduler,
    SyncEngine,
    TagStateStore,
    parse_repo_url,
)

logger = logging.getLogger(__name__)

SERVABLE_PLATFORMS = (Platform.WINDOWS.value, Platform.LINUX.value)


@dataclass
class PackageDownload:
    """A plugin package ready to be streamed to a client."""
    path: Path
    media_type: str = "application/octet-stream"
    chunk_size: int = 65536
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.headers.setdefault(
            'Content-Disposition', f'attachment; filename="{self.filename}"'
        )

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def iter_chunks(self) -> Iterator[bytes]:
        with open(self.path, 'rb') as f:
            while True:
                chunk = f.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk


class PluginRepo:
    """
    High-level API for pluginrepo.

    Owns one repository's components:
    - TagStateStore and PluginIndex under ``repo_root``
    - GitHubClient / AssetDownloader sharing the HTTP configuration
    - SyncEngine and the ScanScheduler driving it
    """

    def __init__(
        self,
        repo_url: Optional[str] = None,
        repo_root: Optional[str] = None,
        config_path: Optional[str] = None,
        github_token: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize PluginRepo.

        Args:
            repo_url: GitHub repository URL (overrides config)
            repo_root: Local repository directory (overrides config)
            config_path: Path to config file (default: ~/.pluginrepo/config.json)
            github_token: GitHub API token (overrides config/env)
            config: Config dict merged over the defaults instead of loading a file
            session: HTTP session shared by API calls and downloads
        """
        if config is not None:
            self._config = merge_configs(get_default_config(), config)
        else:
            self._config = load_config(config_path)

        repository = self._config['repository']
        if repo_url:
            repository['url'] = repo_url
        if repo_root:
            repository['root'] = repo_root
        if github_token:
            self._config['github']['token'] = github_token

        self.repo_url: str = repository.get('url') or ''
        self.repo_root = Path(repository.get('root') or 'plugin_repo').expanduser()
        self.repo_root.mkdir(parents=True, exist_ok=True)

        github = self._config['github']
        download = self._config['download']
        filters = self._config['filters']
        limits = self._config['limits']

        self._github_client = GitHubClient(
            token=get_github_token(self._config),
            api_url=github.get('api_url', 'https://api.github.com'),
            timeout=github.get('timeout_seconds', 30),
            per_page=github.get('per_page', 100),
            max_pages=github.get('max_pages', 10),
            session=session,
        )
        self._downloader = AssetDownloader(
            max_attempts=download.get('max_attempts', 3),
            retry_delay=download.get('retry_delay_seconds', 5),
            connect_timeout=download.get('connect_timeout_seconds', 10),
            read_timeout=download.get('read_timeout_seconds', 30),
            max_concurrent=download.get('max_concurrent', 0),
            chunk_size=download.get('chunk_size', 65536),
            session=session,
        )

        self._store = TagStateStore(self.repo_root)
        self._plugin_index = PluginIndex(self.repo_root)
        loaded = self._store.load_from_disk()
        if loaded:
            logger.debug(f"Loaded {loaded} persisted tags from {self.repo_root}")

        max_path = limits.get('max_path_length', 260)
        max_dir = limits.get('max_dir_length', 200)

        fetcher = ReleaseFetcher(
            client=self._github_client,
            repo_root=self.repo_root,
            plugin_marker=filters.get('plugin_marker', 'plugin'),
            server_marker=filters.get('server_marker', 'server'),
            archive_extensions=filters.get('archive_extensions', ['.zip']),
            max_path_length=max_path,
            max_api_path_length=limits.get('max_api_path_length', 200),
        )
        repackager = Repackager(
            repo_root=self.repo_root,
            owner=self._owner(self.repo_url),
            max_path_length=max_path,
            max_dir_length=max_dir,
        )
        self._engine = SyncEngine(
            repo_url=self.repo_url,
            store=self._store,
            fetcher=fetcher,
            downloader=self._downloader,
            extractor=ArchiveExtractor(max_path_length=max_path),
            repackager=repackager,
            plugin_index=self._plugin_index,
            max_path_length=max_path,
            max_dir_length=max_dir,
        )
        self._scheduler = ScanScheduler(self._engine.reconcile_and_process)

    @staticmethod
    def _owner(repo_url: str) -> str:
        try:
            return sanitize(parse_repo_url(repo_url).owner)
        except InvalidURLError:
            return ""

    @property
    def config(self) -> Dict[str, Any]:
        """Access the configuration."""
        return self._config

    @property
    def engine(self) -> SyncEngine:
        """Access the underlying SyncEngine."""
        return self._engine

    @property
    def store(self) -> TagStateStore:
        """Access the underlying TagStateStore."""
        return self._store

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_tags(self) -> List[str]:
        """Known tag names, sorted."""
        return self._store.tag_names()

    def get_tag(self, tag_name: str) -> Optional[Dict[str, Any]]:
        """Full JSON document of a tag, or None if unknown."""
        record = self._store.get(sanitize(tag_name))
        return record.to_dict() if record is not None else None

    def plugins(self) -> Dict[str, Any]:
        """The plugin index: every built package by plugin id, with tools."""
        return self._plugin_index.all()

    def open_package(self, tag_name: str, platform: str, package_name: str) -> PackageDownload:
        """
        Resolve ``repo_root/tag/platform/package`` for download.

        Raises:
            InvalidInputError: platform is not windows or linux
            NotFoundError: no such package file
        """
        platform = (platform or '').strip().lower()
        if platform not in SERVABLE_PLATFORMS:
            raise InvalidInputError(f"Invalid platform {platform!r}, expected windows or linux")

        path = self.repo_root / sanitize(tag_name) / platform / sanitize(package_name)
        if not path.is_file():
            raise NotFoundError(f"File not found: {path}")

        return PackageDownload(
            path=path,
            chunk_size=self._config['download'].get('chunk_size', 65536),
        )

    # =========================================================================
    # TRIGGERS
    # =========================================================================

    def update(self) -> bool:
        """Fetch releases and reconcile local state."""
        return self._engine.update_repo_info()

    def process_tag(self, tag_name: str, force: bool = False) -> bool:
        return self._engine.process_tag(tag_name, force=force)

    def process_all(self, force: bool = False) -> OperationSummary:
        return self._engine.process_all_tags(force=force)

    def sync(self) -> Optional[OperationSummary]:
        """update() then process_all(); None if the update failed."""
        return self._engine.reconcile_and_process()

    # =========================================================================
    # SCANNING
    # =========================================================================

    def start_scan(self, interval_seconds: Optional[float] = None) -> bool:
        if interval_seconds is None:
            interval_seconds = self._config['scan'].get('interval_seconds', 900)
        return self._scheduler.start(interval_seconds)

    def stop_scan(self) -> None:
        self._scheduler.stop()

    @property
    def scanning(self) -> bool:
        return self._scheduler.is_running

    def close(self) -> None:
        """Stop scanning and release HTTP sessions."""
        self._scheduler.stop()
        self._github_client.close()
        self._downloader.close()

    def __enter__(self) -> 'PluginRepo':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# Convenience function for quick access
def create(
    repo_url: Optional[str] = None,
    repo_root: Optional[str] = None,
    **kwargs
) -> PluginRepo:
    """
    Create a PluginRepo instance.

    Convenience function for:
        repo = pluginrepo.create("https://github.com/acme/widgets", "plugin_repo")
    """
    return PluginRepo(repo_url=repo_url, repo_root=repo_root, **kwargs)
