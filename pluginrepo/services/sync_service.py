"""
Sync service for pluginrepo.

Orchestrates one repository: fetch releases, reconcile them with persisted
state, and turn every unprocessed tag into plugin packages.

Processing a tag never holds the store lock across I/O: the record is
copied out, downloads, extraction and repackaging run on the copy, and the
result is committed back only if at least one package was built.
"""

import shutil
import tempfile
import time
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..domain import (
    AssetRecord,
    OperationSummary,
    PluginPackageRecord,
    TagProcessResult,
    TagRecord,
)
from ..errors import (
    ExtractionError,
    InvalidInputError,
    NotFoundError,
    PathTooLongError,
    PluginRepoError,
)
from ..infra.archive import ArchiveExtractor
from ..infra.downloader import AssetDownloader
from ..sanitize import sanitize
from .release_service import ReleaseFetcher
from .repackage_service import Repackager
from .tag_store import PluginIndex, TagStateStore

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "temp_extract"


class SyncEngine:
    """
    Release synchronization and repackaging for one repository.

    Example:
        engine = SyncEngine(repo_url, store, fetcher, downloader, extractor, repackager)
        if engine.update_repo_info():
            summary = engine.process_all_tags()
            print(f"{summary.successful}/{summary.total} tags built")
    """

    def __init__(
        self,
        repo_url: str,
        store: TagStateStore,
        fetcher: ReleaseFetcher,
        downloader: AssetDownloader,
        extractor: ArchiveExtractor,
        repackager: Repackager,
        plugin_index: Optional[PluginIndex] = None,
        max_path_length: int = 260,
        max_dir_length: int = 200,
        remove_attempts: int = 3,
        remove_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.repo_url = repo_url
        self.store = store
        self.fetcher = fetcher
        self.downloader = downloader
        self.extractor = extractor
        self.repackager = repackager
        self.plugin_index = plugin_index
        self.max_path_length = max_path_length
        self.max_dir_length = max_dir_length
        self.remove_attempts = max(1, remove_attempts)
        self.remove_delay = remove_delay
        self._sleep = sleep

        self.last_result: Optional[TagProcessResult] = None
        self.last_summary: Optional[OperationSummary] = None

    @property
    def repo_root(self) -> Path:
        return self.store.repo_root

    def update_repo_info(self) -> bool:
        """Fetch releases and reconcile them into the store."""
        if not self.repo_url:
            logger.error("Plugin repository URL not set")
            return False

        try:
            fetched = self.fetcher.fetch_all_releases(self.repo_url)
        except PluginRepoError as e:
            logger.error(f"Failed to fetch releases from {self.repo_url}: {e}")
            return False

        self.store.reconcile(fetched)
        return True

    def process_tag(self, tag_name: str, force: bool = False) -> bool:
        """
        Download, extract and repackage one tag.

        Args:
            tag_name: Tag to process (sanitized before use)
            force: Rebuild even if the tag already has packages

        Returns:
            True if the tag is processed (now or before), False otherwise
        """
        result = self._process(tag_name, force)
        self.last_result = result
        return result.success

    def process_all_tags(self, force: bool = False) -> OperationSummary:
        """
        Process every known tag (rebuilding processed ones when forced).

        The tag list is snapshotted first; each tag is then processed on
        its own so one failure never stops the rest.
        """
        summary = OperationSummary(operation="process_all")
        self.last_summary = summary

        for tag_name in self.store.tag_names():
            try:
                result = self._process(tag_name, force=force)
            except Exception as e:
                logger.exception(f"Unexpected error processing tag {tag_name}: {e}")
                result = TagProcessResult(tag_name=tag_name, error=str(e))
            self.last_result = result
            summary.add_detail(result.to_detail())

        logger.info(
            f"Processed {summary.total} tags: {summary.successful} built, "
            f"{summary.skipped} already done, {summary.failed} failed"
        )
        return summary

    def reconcile_and_process(self) -> Optional[OperationSummary]:
        """One scan cycle. None if the release listing could not be fetched."""
        if not self.update_repo_info():
            return None
        return self.process_all_tags()

    def _process(self, tag_name: str, force: bool) -> TagProcessResult:
        result = TagProcessResult(tag_name=str(tag_name or ''))
        try:
            self._process_into(result, tag_name, force)
        except PluginRepoError as e:
            logger.error(f"Failed to process tag {result.tag_name}: {e}")
            result.error = str(e)
        except OSError as e:
            logger.error(f"Filesystem error processing tag {result.tag_name}: {e}")
            result.error = str(e)
        return result

    def _process_into(self, result: TagProcessResult, tag_name: str, force: bool) -> None:
        if not tag_name or not str(tag_name).strip():
            raise InvalidInputError("Tag name is empty")

        safe_tag = sanitize(tag_name)
        result.tag_name = safe_tag

        record = self.store.get(safe_tag)
        if record is None:
            raise NotFoundError(f"Tag {safe_tag} not found")

        if record.is_processed and not force:
            logger.info(f"Tag {safe_tag} already processed")
            result.skipped = True
            if self.plugin_index is not None and not self.plugin_index.covers(record):
                self._record_plugins(record)
            return

        tag_dir = self.repo_root / safe_tag
        if len(str(tag_dir)) > self.max_dir_length:
            raise PathTooLongError(tag_dir, self.max_dir_length)
        tag_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Processing tag {safe_tag} with {len(record.assets)} assets")

        eligible = []
        for asset in record.assets:
            if len(asset.local_path) > self.max_path_length:
                logger.warning(f"Asset local path too long, skipping: {asset.local_path}")
                continue
            eligible.append(asset)

        successes, failures = self.downloader.download_all(eligible)
        result.downloaded = [a.name for a in successes]
        result.download_failures = [a.name for a in failures]
        logger.info(
            f"Download phase completed. Successful downloads: {len(successes)}/{len(record.assets)}"
        )

        packages: Dict[str, PluginPackageRecord] = {}
        for asset in successes:
            try:
                scratch = Path(tempfile.mkdtemp(prefix=f"{SCRATCH_PREFIX}_", dir=tag_dir))
            except OSError as e:
                logger.error(f"Cannot create extract directory in {tag_dir}: {e}")
                result.extraction_failures.append(asset.name)
                continue
            try:
                built = self._build_asset(asset, scratch, record, result)
            finally:
                self.remove_tree(scratch)
            for package in built:
                package.id = self._unique_id(package, packages)
                packages[package.id] = package

        if not packages:
            result.error = "no plugin packages produced"
            logger.warning(f"No plugins processed for tag {safe_tag}")
            return

        record.plugin_packages = packages
        self.store.commit(record)
        result.packages = list(packages)
        self._record_plugins(record)
        logger.info(f"Successfully processed tag {safe_tag}: {len(packages)} package(s)")

    def _build_asset(self, asset: AssetRecord, scratch: Path, record: TagRecord,
                     result: TagProcessResult) -> List[PluginPackageRecord]:
        """Extract one downloaded asset and repackage what it contains."""
        if len(str(scratch)) > self.max_path_length:
            logger.error(f"Extract directory path too long: {scratch}")
            result.extraction_failures.append(asset.name)
            return []

        try:
            extraction = self.extractor.extract(Path(asset.local_path), scratch)
        except (ExtractionError, PathTooLongError, OSError) as e:
            logger.error(f"Failed to extract asset {asset.name}: {e}")
            result.extraction_failures.append(asset.name)
            return []

        if not extraction.success:
            logger.error(
                f"Failed to extract asset {asset.name}: "
                f"{len(extraction.failed)} entries could not be written"
            )
            result.extraction_failures.append(asset.name)
            return []

        try:
            repackaged = self.repackager.repackage(scratch, record.tag_name,
                                                   release_date=record.published_at)
        except (PluginRepoError, OSError) as e:
            logger.error(f"Failed to repackage asset {asset.name}: {e}")
            result.extraction_failures.append(asset.name)
            return []
        if not repackaged.success:
            logger.warning(f"No plugins repackaged from asset {asset.name}")
        return repackaged.packages

    def _record_plugins(self, record: TagRecord) -> None:
        """Write a tag's packages to the plugin index; a failed write leaves the tag built."""
        if self.plugin_index is None:
            return
        try:
            self.plugin_index.record_tag(record)
        except OSError as e:
            logger.error(f"Failed to update plugin index for tag {record.tag_name}: {e}")

    @staticmethod
    def _unique_id(package: PluginPackageRecord, taken: Dict[str, PluginPackageRecord]) -> str:
        """Suffix the platform (then a counter) when a plugin id repeats within a tag."""
        if package.id not in taken:
            return package.id
        candidate = f"{package.id}_{package.platform.value}"
        counter = 2
        while candidate in taken:
            candidate = f"{package.id}_{package.platform.value}_{counter}"
            counter += 1
        return candidate

    def remove_tree(self, path: Path) -> bool:
        """Remove a directory tree, retrying when files are briefly locked."""
        for attempt in range(1, self.remove_attempts + 1):
            if not path.exists():
                return True
            try:
                shutil.rmtree(path)
                return True
            except OSError as e:
                logger.warning(
                    f"Error removing {path} (attempt {attempt}/{self.remove_attempts}): {e}"
                )
                if attempt < self.remove_attempts:
                    self._sleep(self.remove_delay)

        logger.error(f"Failed to remove directory after {self.remove_attempts} attempts: {path}")
        return False
