"""
Release discovery for pluginrepo.

Turns the GitHub release listing of the configured repository into
TagRecords: tag names and asset names are sanitized, assets that are not
plugin bundles are dropped, and every kept asset gets its platform and
deterministic local path.
"""

import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from ..domain import AssetRecord, Platform, TagRecord
from ..errors import InvalidURLError
from ..infra.github_client import GitHubClient, GitHubRelease
from ..sanitize import sanitize

logger = logging.getLogger(__name__)

GITHUB_URL_RE = re.compile(
    r'^https?://(?:www\.)?github\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?/?$',
    re.IGNORECASE,
)

DEFAULT_PLUGIN_MARKER = "plugin"
DEFAULT_SERVER_MARKER = "server"
DEFAULT_ARCHIVE_EXTENSIONS = (".zip",)


@dataclass(frozen=True)
class RepoRef:
    """Owner/repo pair of a GitHub repository."""
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return self.full_name


def parse_repo_url(url: str) -> RepoRef:
    """
    Parse ``https://github.com/<owner>/<repo>`` into a RepoRef.

    A trailing ``.git`` or ``/`` is accepted. Anything else raises.

    Examples:
        >>> parse_repo_url("https://github.com/acme/widgets.git")
        RepoRef(owner='acme', repo='widgets')

    Raises:
        InvalidURLError: url is not a github.com repository URL
    """
    match = GITHUB_URL_RE.match((url or '').strip())
    if not match:
        raise InvalidURLError(url)
    return RepoRef(owner=match.group(1), repo=match.group(2))


def is_plugin_asset(
    name: str,
    plugin_marker: str = DEFAULT_PLUGIN_MARKER,
    server_marker: str = DEFAULT_SERVER_MARKER,
    archive_extensions: Sequence[str] = DEFAULT_ARCHIVE_EXTENSIONS,
) -> bool:
    """
    Plugin bundles carry the plugin marker and an archive extension.

    Server bundles published in the same release also say "plugin" in
    places, so anything carrying the server marker is rejected.
    """
    lower = (name or '').lower()
    if plugin_marker.lower() not in lower:
        return False
    if not any(ext.lower() in lower for ext in archive_extensions):
        return False
    return server_marker.lower() not in lower


def platform_from_filename(name: str) -> Platform:
    """Guess the target platform from substrings of a file name."""
    lower = (name or '').lower()
    if 'windows' in lower or '.dll' in lower:
        return Platform.WINDOWS
    if 'linux' in lower or '.so' in lower:
        return Platform.LINUX
    return Platform.UNKNOWN


class ReleaseFetcher:
    """
    Fetches releases and maps them to TagRecords.

    Example:
        fetcher = ReleaseFetcher(GitHubClient(), Path("plugin_repo"))
        tags = fetcher.fetch_all_releases("https://github.com/acme/widgets")
    """

    def __init__(
        self,
        client: GitHubClient,
        repo_root: Path,
        plugin_marker: str = DEFAULT_PLUGIN_MARKER,
        server_marker: str = DEFAULT_SERVER_MARKER,
        archive_extensions: Sequence[str] = DEFAULT_ARCHIVE_EXTENSIONS,
        max_path_length: int = 260,
        max_api_path_length: int = 200,
    ):
        self.client = client
        self.repo_root = Path(repo_root)
        self.plugin_marker = plugin_marker
        self.server_marker = server_marker
        self.archive_extensions = tuple(archive_extensions)
        self.max_path_length = max_path_length
        self.max_api_path_length = max_api_path_length

    def fetch_all_releases(self, repo_url: str) -> List[TagRecord]:
        """
        List every release of ``repo_url`` as a metadata-only TagRecord.

        Raises:
            InvalidURLError: bad URL, or the API path is over the limit
            UnavailableError: API unreachable or non-2xx
            ParseError: API payload malformed
        """
        ref = parse_repo_url(repo_url)
        owner, repo = sanitize(ref.owner), sanitize(ref.repo)

        api_path = self.client.releases_path(owner, repo)
        if len(api_path) > self.max_api_path_length:
            raise InvalidURLError(repo_url, f"API path too long ({len(api_path)} > {self.max_api_path_length})")

        records = []
        for release in self.client.list_releases(owner, repo):
            record = self.to_tag_record(release)
            if record is not None:
                records.append(record)

        logger.info(f"Found {len(records)} releases in {owner}/{repo}")
        return records

    def to_tag_record(self, release: GitHubRelease) -> Optional[TagRecord]:
        """Map one release; None when it has no tag name."""
        if not release.tag_name.strip():
            logger.warning("Skipping release without a tag name")
            return None

        tag_name = sanitize(release.tag_name)
        record = TagRecord(
            tag_name=tag_name,
            display_name=sanitize(release.name) if release.name else "",
            published_at=release.published_at,
        )

        for asset in release.assets:
            if not asset.name:
                continue
            name = sanitize(asset.name)
            if not is_plugin_asset(name, self.plugin_marker, self.server_marker,
                                   self.archive_extensions):
                logger.debug(f"{tag_name}: ignoring non-plugin asset {name}")
                continue

            local_path = self.repo_root / tag_name / name
            if len(str(local_path)) > self.max_path_length:
                logger.warning(f"Asset local path too long, skipping: {local_path}")
                continue

            record.assets.append(AssetRecord(
                name=name,
                download_url=asset.browser_download_url,
                local_path=str(local_path),
                platform=platform_from_filename(name),
                size=asset.size,
            ))

        return record
