"""
JSON persistence for pluginrepo.

Every document is written to a temp file in the target directory and
renamed over the old one, so readers never see a half-written file.

FileStore holds one keyed JSON document (the plugin index). TagFileStore
holds one JSON document per release tag, beside the tag's directory.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


def write_json_atomic(path: Path, data: Any) -> None:
    """Write data as JSON atomically using a temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)

    # Write to temp file in same directory
    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp"
    )

    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write('\n')  # Trailing newline

        # Atomic rename
        os.replace(temp_path, path)

    except BaseException:
        # Clean up temp file on error
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


class FileStore:
    """
    One keyed JSON document with a write-through cache.

    Every mutation rewrites the whole file atomically. Reads hand out
    shallow copies, so callers may modify what they get.

    Example:
        store = FileStore(Path("plugin_repo/plugins.json"))
        store.set("acme_widgets", {"name": "widgets", ...})
        data = store.get("acme_widgets")
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser().resolve()
        # Reentrant: mutations call read() while holding the lock
        self._lock = threading.RLock()
        self._cache: Optional[Dict[str, Any]] = None
        if not self.path.exists():
            write_json_atomic(self.path, {})

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Error reading {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {self.path}: top level is not an object")
            return {}
        return data

    def read(self) -> Dict[str, Any]:
        with self._lock:
            if self._cache is None:
                self._cache = self._load()
            return dict(self._cache)

    def write(self, data: Dict[str, Any]) -> None:
        with self._lock:
            write_json_atomic(self.path, data)
            self._cache = dict(data)

    def get(self, key: str, default: Any = None) -> Any:
        return self.read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, updates: Dict[str, Any]) -> None:
        """Merge ``updates`` into the document and write it once."""
        with self._lock:
            data = self.read()
            data.update(updates)
            self.write(data)

    def __len__(self) -> int:
        return len(self.read())

    def __contains__(self, key: str) -> bool:
        return key in self.read()


class TagFileStore:
    """
    One JSON document per release tag: ``{root}/{tag}.json``.

    Tag names must already be sanitized; this class only does file I/O.
    Unreadable or malformed documents read as None.
    """

    SUFFIX = ".json"

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, tag_name: str) -> Path:
        return self.root / f"{tag_name}{self.SUFFIX}"

    def read(self, tag_name: str) -> Optional[Dict[str, Any]]:
        path = self.path_for(tag_name)
        if not path.is_file():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Error reading {path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: top level is not an object")
            return None
        return data

    def write(self, tag_name: str, data: Dict[str, Any]) -> Path:
        path = self.path_for(tag_name)
        write_json_atomic(path, data)
        return path

    def tag_names(self) -> List[str]:
        """Tags that have a document on disk (plugins.json excluded)."""
        if not self.root.is_dir():
            return []
        return sorted(
            p.stem for p in self.root.glob(f"*{self.SUFFIX}")
            if p.is_file() and p.name != "plugins.json"
        )
