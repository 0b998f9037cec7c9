"""
GitHub API client infrastructure for pluginrepo.

Provides a thin abstraction over the GitHub releases API:
- Authenticated requests.Session with token from config or environment
- Page-by-page listing of releases
- Rate limit tracking from response headers

Transport failures and non-2xx answers raise UnavailableError, payloads
that are not a JSON list raise ParseError. Nothing is retried here; the
scan scheduler simply tries again on its next cycle.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

import requests

from ..errors import UnavailableError, ParseError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


@dataclass
class RateLimitStatus:
    """GitHub API rate limit status."""
    remaining: int
    limit: int
    reset_time: int  # Unix timestamp
    used: int

    @property
    def minutes_until_reset(self) -> int:
        return max(0, (self.reset_time - int(time.time())) // 60)

    @property
    def is_low(self) -> bool:
        """Fewer than 100 calls left in the window."""
        return self.remaining < 100


@dataclass
class GitHubAsset:
    """One asset attached to a release."""
    name: str
    browser_download_url: str
    size: int = 0
    content_type: str = ""

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'GitHubAsset':
        size = data.get('size', 0)
        return cls(
            name=str(data.get('name') or ''),
            browser_download_url=str(data.get('browser_download_url') or ''),
            size=size if isinstance(size, int) and size > 0 else 0,
            content_type=str(data.get('content_type') or ''),
        )


@dataclass
class GitHubRelease:
    """GitHub release metadata."""
    tag_name: str
    name: str = ""
    published_at: str = ""
    draft: bool = False
    prerelease: bool = False
    assets: List[GitHubAsset] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'GitHubRelease':
        """Create from GitHub API response."""
        assets = data.get('assets')
        if not isinstance(assets, list):
            assets = []

        return cls(
            tag_name=str(data.get('tag_name') or ''),
            name=str(data.get('name') or ''),
            published_at=str(data.get('published_at') or ''),
            draft=bool(data.get('draft', False)),
            prerelease=bool(data.get('prerelease', False)),
            assets=[GitHubAsset.from_api_response(a) for a in assets if isinstance(a, dict)],
        )


class GitHubClient:
    """
    GitHub releases API client.

    Example:
        client = GitHubClient(token="ghp_...")
        for release in client.list_releases("acme", "widgets"):
            print(release.tag_name, len(release.assets))
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30,
        per_page: int = 100,
        max_pages: int = 10,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHubClient.

        Args:
            token: GitHub token, sent as a bearer token when set
            api_url: API base URL (GitHub Enterprise installs differ)
            timeout: Request timeout in seconds
            per_page: Releases per page (GitHub caps this at 100)
            max_pages: Upper bound on pages fetched per listing
            session: Pre-built session, mostly for tests
        """
        self.token = token
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.per_page = max(1, min(int(per_page), 100))
        self.max_pages = max(1, int(max_pages))
        self._rate_limit_status: Optional[RateLimitStatus] = None

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'pluginrepo',
        })
        if self.token:
            self.session.headers['Authorization'] = f'Bearer {self.token}'

    def _update_rate_limit_from_headers(self, headers) -> None:
        """Update rate limit status from response headers."""
        try:
            remaining = int(headers.get('X-RateLimit-Remaining', -1))
            limit = int(headers.get('X-RateLimit-Limit', -1))
            reset_time = int(headers.get('X-RateLimit-Reset', 0))
            used = int(headers.get('X-RateLimit-Used', 0))
        except (ValueError, TypeError):
            return  # Ignore parsing errors

        if remaining >= 0 and limit >= 0:
            self._rate_limit_status = RateLimitStatus(
                remaining=remaining,
                limit=limit,
                reset_time=reset_time,
                used=used
            )

            if self._rate_limit_status.is_low:
                logger.warning(
                    f"GitHub API rate limit low: {remaining}/{limit} remaining, "
                    f"resets in {self._rate_limit_status.minutes_until_reset} minutes"
                )

    @property
    def rate_limit_status(self) -> Optional[RateLimitStatus]:
        """Rate limit status from the last API call, if any."""
        return self._rate_limit_status

    def releases_path(self, owner: str, repo: str) -> str:
        """API path of a repository's release listing."""
        return f"/repos/{owner}/{repo}/releases"

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise UnavailableError(f"GitHub API request failed: {e}") from e

        self._update_rate_limit_from_headers(response.headers)

        if not 200 <= response.status_code < 300:
            raise UnavailableError(
                f"GitHub API error {response.status_code} for {path}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"GitHub API returned invalid JSON for {path}: {e}") from e

    def list_release_payloads(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """
        Fetch the raw release objects of a repository, newest first.

        Pages are requested until one comes back short or max_pages is hit.

        Raises:
            UnavailableError: transport failure or non-2xx status
            ParseError: body is not a JSON array
        """
        path = self.releases_path(owner, repo)
        releases: List[Dict[str, Any]] = []

        for page in range(1, self.max_pages + 1):
            data = self._get_json(path, params={'per_page': self.per_page, 'page': page})
            if not isinstance(data, list):
                raise ParseError(f"Expected a JSON array from {path}, got {type(data).__name__}")

            releases.extend(item for item in data if isinstance(item, dict))
            if len(data) < self.per_page:
                break
        else:
            logger.warning(f"Stopped listing {owner}/{repo} releases after {self.max_pages} pages")

        logger.debug(f"GitHub: {len(releases)} releases for {owner}/{repo}")
        return releases

    def list_releases(self, owner: str, repo: str) -> List[GitHubRelease]:
        """
        Get repository releases.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            List of GitHubRelease objects in API order
        """
        return [
            GitHubRelease.from_api_response(data)
            for data in self.list_release_payloads(owner, repo)
        ]

    def close(self) -> None:
        self.session.close()
