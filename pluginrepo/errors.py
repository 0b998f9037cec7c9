"""
Exception hierarchy for pluginrepo.

Components raise these; the sync engine and the scanner catch them at the
boundary of one unit of work (an asset, a tag, a scan cycle) so that one
failure never aborts sibling work.
"""

from typing import Optional


class PluginRepoError(Exception):
    """Base class for all pluginrepo errors."""

    #: Whether retrying the same operation may succeed.
    retryable = False


class InvalidInputError(PluginRepoError):
    """Malformed input (bad tag name, bad platform, ...). Never retried."""


class InvalidURLError(InvalidInputError):
    """Repository URL does not match the expected GitHub pattern."""

    def __init__(self, url: str, reason: str = "not a github.com/<owner>/<repo> URL"):
        self.url = url
        super().__init__(f"Invalid repository URL {url!r}: {reason}")


class NotFoundError(PluginRepoError):
    """Remote or local resource does not exist. Terminal, never retried."""


class UnavailableError(PluginRepoError):
    """Hosting API unreachable or returned a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ParseError(PluginRepoError):
    """Remote or persisted payload could not be decoded."""


class TransientIOError(PluginRepoError):
    """Timeout, connection reset, lock contention. Retried a bounded number of times."""

    retryable = True


class DownloadFailedError(PluginRepoError):
    """Download still failing after all retry attempts."""

    def __init__(self, name: str, attempts: int, last_error: Optional[str] = None):
        self.name = name
        self.attempts = attempts
        self.last_error = last_error
        message = f"Failed to download {name} after {attempts} attempts"
        if last_error:
            message += f": {last_error}"
        super().__init__(message)


class PathTooLongError(PluginRepoError):
    """A constructed path exceeds the configured filesystem ceiling."""

    def __init__(self, path, limit: int):
        self.path = str(path)
        self.limit = limit
        super().__init__(f"Path too long ({len(self.path)} > {limit}): {self.path}")


class ExtractionError(PluginRepoError):
    """Archive missing or unreadable."""


__all__ = [
    'PluginRepoError',
    'InvalidInputError',
    'InvalidURLError',
    'NotFoundError',
    'UnavailableError',
    'ParseError',
    'TransientIOError',
    'DownloadFailedError',
    'PathTooLongError',
    'ExtractionError',
]
