"""
Tag state for pluginrepo.

TagStateStore owns the authoritative in-memory map of release tags. All
access goes through one lock, and every read hands back a copy, so callers
can do network and disk work on a record without holding the lock.

Persisted tag documents are untrusted: every string that can end up in a
path is sanitized again on the way in and on the way out, and paths are
recomputed from the repository root rather than read back.
"""

import copy
import re
import threading
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..domain import AssetRecord, PluginPackageRecord, TagRecord
from ..infra.file_store import FileStore, TagFileStore
from ..sanitize import sanitize

logger = logging.getLogger(__name__)

PLUGIN_INDEX_FILENAME = "plugins.json"

# 2024-05-01T12:00:00Z, 2024-05-01T12:00:00.123+02:00, 2024-05-01
_ISO_TIMESTAMP_RE = re.compile(
    r'^\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$'
)


def _clean(value: Any) -> str:
    """Sanitize a free-text field, keeping empty values empty."""
    if value is None or value == "":
        return ""
    return sanitize(str(value))


def _clean_timestamp(value: Any) -> str:
    value = str(value or "")
    return value if _ISO_TIMESTAMP_RE.match(value) else ""


def _clean_url(value: Any) -> str:
    value = str(value or "")
    return value if value.lower().startswith(("http://", "https://")) else ""


class TagStateStore:
    """
    Guarded map of tag name to TagRecord, backed by one JSON file per tag.

    Example:
        store = TagStateStore(Path("plugin_repo"))
        merged = store.reconcile(fetched_records)
        record = store.get("v1.2.0")
    """

    def __init__(self, repo_root: Path, files: Optional[TagFileStore] = None):
        self.repo_root = Path(repo_root)
        self.files = files or TagFileStore(self.repo_root)
        self._lock = threading.Lock()
        self._tags: Dict[str, TagRecord] = {}

    # Sanitizing

    def scrub(self, record: TagRecord) -> TagRecord:
        """
        Return a sanitized copy of ``record`` with recomputed paths.

        Idempotent: scrubbing a scrubbed record changes nothing.
        """
        tag_name = sanitize(record.tag_name)
        tag_dir = self.repo_root / tag_name

        clean = TagRecord(
            tag_name=tag_name,
            display_name=_clean(record.display_name),
            published_at=_clean_timestamp(record.published_at),
        )

        for asset in record.assets:
            if not asset.name:
                continue
            name = sanitize(asset.name)
            clean.assets.append(AssetRecord(
                name=name,
                download_url=_clean_url(asset.download_url),
                local_path=str(tag_dir / name),
                platform=asset.platform,
                size=asset.size,
            ))

        for package_id, package in record.plugin_packages.items():
            if not package_id:
                continue
            pid = sanitize(package_id)
            package_name = sanitize(package.package_name) if package.package_name else ""
            clean.plugin_packages[pid] = PluginPackageRecord(
                id=pid,
                name=_clean(package.name),
                version=_clean(package.version),
                description=_clean(package.description),
                author=_clean(package.author),
                release_date=_clean_timestamp(package.release_date),
                tag_name=tag_name,
                local_path=str(tag_dir / package.platform.value / package_name) if package_name else "",
                platform=package.platform,
                tools=copy.deepcopy(package.tools),
            )

        return clean

    # Persistence

    def load_persisted(self, tag_name: str) -> Optional[TagRecord]:
        """Read the persisted record of a tag; None if absent or malformed."""
        safe_tag = sanitize(tag_name)
        data = self.files.read(safe_tag)
        if data is None:
            return None
        try:
            record = self.scrub(TagRecord.from_dict(data))
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring malformed tag file for {tag_name}: {e}")
            return None
        if record.tag_name != safe_tag:
            logger.warning(f"Ignoring tag file for {safe_tag}: it names tag {record.tag_name}")
            return None
        return record

    def persist(self, record: TagRecord) -> Path:
        """Write a record's document atomically. Returns the file path."""
        clean = self.scrub(record)
        path = self.files.write(clean.tag_name, clean.to_dict())
        logger.debug(f"Saved tag info to {path}")
        return path

    def load_from_disk(self) -> int:
        """
        Populate memory from every persisted tag document.

        Lets the repository answer queries before the first remote sync.
        Returns the number of tags loaded.
        """
        loaded: Dict[str, TagRecord] = {}
        for name in self.files.tag_names():
            record = self.load_persisted(name)
            if record is not None:
                loaded.setdefault(record.tag_name, record)

        with self._lock:
            for name, record in loaded.items():
                self._tags.setdefault(name, record)
        return len(loaded)

    # Guarded state

    def reconcile(self, fetched: Iterable[TagRecord]) -> Dict[str, TagRecord]:
        """
        Merge freshly fetched records with persisted state.

        A persisted record that already has plugin packages wins over the
        fetched one; otherwise the fetched record is adopted. The result
        replaces the in-memory map. Returns a copy of the new map.
        """
        merged: Dict[str, TagRecord] = {}
        for record in fetched:
            clean = self.scrub(record)
            if clean.tag_name in merged:
                logger.warning(f"Duplicate tag {clean.tag_name} in release listing, keeping the first")
                continue

            persisted = self.load_persisted(clean.tag_name)
            if persisted is not None and persisted.is_processed:
                logger.debug(f"Loaded existing info for tag {clean.tag_name}")
                merged[clean.tag_name] = persisted
            else:
                merged[clean.tag_name] = clean

        with self._lock:
            self._tags = merged
            snapshot = copy.deepcopy(merged)

        logger.info(f"Repository info updated, found {len(snapshot)} tags")
        return snapshot

    def get(self, tag_name: str) -> Optional[TagRecord]:
        """Copy of one record, or None."""
        with self._lock:
            record = self._tags.get(tag_name)
            return copy.deepcopy(record) if record is not None else None

    def all_tags(self) -> Dict[str, TagRecord]:
        with self._lock:
            return copy.deepcopy(self._tags)

    def tag_names(self) -> List[str]:
        with self._lock:
            return sorted(self._tags)

    def commit(self, record: TagRecord) -> Path:
        """
        Persist a record, then replace the in-memory copy.

        Memory only changes once the file is written, so a failed write
        leaves the previous state in place on both sides.
        """
        clean = self.scrub(record)
        path = self.persist(clean)
        with self._lock:
            self._tags[clean.tag_name] = copy.deepcopy(clean)
        return path

    def __len__(self) -> int:
        with self._lock:
            return len(self._tags)

    def __contains__(self, tag_name: str) -> bool:
        with self._lock:
            return tag_name in self._tags


class PluginIndex:
    """
    Top-level ``plugins.json``: every known plugin package by id, with tools.

    Later tags overwrite earlier entries for the same plugin id, so the
    index points at the most recently built package of each plugin.
    """

    def __init__(self, repo_root: Path):
        self.store = FileStore(Path(repo_root) / PLUGIN_INDEX_FILENAME)

    def record_tag(self, record: TagRecord) -> None:
        """Add or replace the entries of every package built for ``record``."""
        if not record.plugin_packages:
            return
        self.store.update({
            pid: package.to_dict(include_tools=True)
            for pid, package in record.plugin_packages.items()
        })

    def covers(self, record: TagRecord) -> bool:
        """True if every package id of ``record`` has an index entry."""
        known = self.store.read()
        return all(pid in known for pid in record.plugin_packages)

    def get(self, plugin_id: str) -> Optional[PluginPackageRecord]:
        data = self.store.get(plugin_id)
        if not isinstance(data, dict):
            return None
        package = PluginPackageRecord.from_dict(data)
        package.id = plugin_id
        return package

    def all(self) -> Dict[str, Dict[str, Any]]:
        return self.store.read()

    def __len__(self) -> int:
        return len(self.store)
