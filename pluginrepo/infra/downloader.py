"""
Release asset downloads for pluginrepo.

Streams each asset into a temp file beside its destination and renames it
into place, so a crash never leaves a truncated archive under the final
name. Failed attempts are retried with a fixed delay; a 404 is final.
"""

import os
import tempfile
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import requests

from ..domain import AssetRecord
from ..errors import (
    DownloadFailedError,
    NotFoundError,
    PluginRepoError,
    TransientIOError,
)

logger = logging.getLogger(__name__)


class AssetDownloader:
    """
    Downloads release assets with bounded retry.

    Example:
        downloader = AssetDownloader(max_attempts=3, retry_delay=5)
        ok, failed = downloader.download_all(record.assets)
    """

    def __init__(
        self,
        max_attempts: int = 3,
        retry_delay: float = 5.0,
        connect_timeout: float = 10,
        read_timeout: float = 30,
        max_concurrent: int = 0,
        chunk_size: int = 65536,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize AssetDownloader.

        Args:
            max_attempts: Attempts per asset before giving up
            retry_delay: Seconds between attempts
            connect_timeout: Connect timeout in seconds
            read_timeout: Read timeout in seconds
            max_concurrent: Worker cap for download_all (0 = one per asset)
            chunk_size: Streaming chunk size in bytes
            session: Pre-built session, mostly for tests
            sleep: Delay function, replaced in tests
        """
        self.max_attempts = max(1, int(max_attempts))
        self.retry_delay = retry_delay
        self.timeout = (connect_timeout, read_timeout)
        self.max_concurrent = max(0, int(max_concurrent))
        self.chunk_size = chunk_size
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', 'pluginrepo')
        self._sleep = sleep

    def _is_complete(self, asset: AssetRecord, dest: Path) -> bool:
        if not dest.is_file():
            return False
        if asset.size and dest.stat().st_size != asset.size:
            logger.info(
                f"{asset.name}: local size {dest.stat().st_size} != {asset.size}, downloading again"
            )
            return False
        return True

    def _fetch_once(self, asset: AssetRecord, dest: Path) -> int:
        """One download attempt. Returns the number of bytes written."""
        try:
            response = self.session.get(
                asset.download_url,
                stream=True,
                allow_redirects=True,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransientIOError(f"request failed: {e}") from e

        with response:
            if response.status_code == 404:
                raise NotFoundError(f"{asset.name}: {asset.download_url} returned 404")
            if response.status_code != 200:
                raise TransientIOError(f"HTTP {response.status_code}")

            try:
                total = int(response.headers.get('Content-Length') or 0)
            except (TypeError, ValueError):
                total = 0

            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                fd, temp_path = tempfile.mkstemp(
                    dir=dest.parent, prefix=f".{dest.name}.", suffix=".part"
                )
            except OSError as e:
                raise TransientIOError(f"cannot create temp file: {e}") from e

            written = 0
            next_mark = 25
            try:
                with os.fdopen(fd, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if not chunk:
                            continue
                        f.write(chunk)
                        written += len(chunk)
                        if total and written * 100 // total >= next_mark:
                            logger.debug(f"{asset.name}: {written * 100 // total}% ({written}/{total})")
                            next_mark = (written * 100 // total) // 25 * 25 + 25

                if total and written < total:
                    raise TransientIOError(f"short body: {written} of {total} bytes")
                if asset.size and written != asset.size:
                    raise TransientIOError(f"size mismatch: {written} != {asset.size} bytes")

                os.replace(temp_path, dest)
            except requests.RequestException as e:
                self._discard(temp_path)
                raise TransientIOError(f"transfer interrupted: {e}") from e
            except OSError as e:
                self._discard(temp_path)
                raise TransientIOError(f"write failed: {e}") from e
            except BaseException:
                self._discard(temp_path)
                raise

        return written

    @staticmethod
    def _discard(temp_path: str) -> None:
        try:
            os.unlink(temp_path)
        except OSError:
            pass

    def download(self, asset: AssetRecord) -> Path:
        """
        Download one asset to its local_path.

        An existing file counts as done unless the API reported a size that
        disagrees with it.

        Raises:
            NotFoundError: server answered 404 (not retried)
            DownloadFailedError: every attempt failed
        """
        dest = Path(asset.local_path)
        if self._is_complete(asset, dest):
            logger.debug(f"{asset.name}: already present at {dest}")
            return dest

        last_error: Optional[str] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                written = self._fetch_once(asset, dest)
                logger.info(f"Downloaded {asset.name} ({written} bytes)")
                return dest
            except TransientIOError as e:
                last_error = str(e)
                logger.warning(
                    f"Download of {asset.name} failed (attempt {attempt}/{self.max_attempts}): {e}"
                )
                if attempt < self.max_attempts:
                    self._sleep(self.retry_delay)

        raise DownloadFailedError(asset.name, self.max_attempts, last_error)

    def download_all(
        self, assets: Sequence[AssetRecord]
    ) -> Tuple[List[AssetRecord], List[AssetRecord]]:
        """
        Download assets concurrently, one task per asset.

        Returns:
            (successes, failures), both in the order of ``assets``
        """
        if not assets:
            return [], []

        workers = self.max_concurrent or len(assets)
        successes: List[AssetRecord] = []
        failures: List[AssetRecord] = []

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.download, asset) for asset in assets]

            for asset, future in zip(assets, futures):
                try:
                    future.result()
                    successes.append(asset)
                except PluginRepoError as e:
                    logger.error(f"Giving up on {asset.name}: {e}")
                    failures.append(asset)
                except Exception as e:
                    logger.exception(f"Unexpected error downloading {asset.name}: {e}")
                    failures.append(asset)

        return successes, failures

    def close(self) -> None:
        self.session.close()
