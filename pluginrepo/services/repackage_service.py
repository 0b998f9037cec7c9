"""
Repackaging service for pluginrepo.

An extracted release archive holds plugin binaries (``.dll`` for Windows,
``.so`` for Linux) next to their tool manifests (``<plugin>_tools.json``).
Each binary+manifest pair is bundled into its own zip under
``repo_root/<tag>/<platform>/<plugin>_<tag>_<timestamp>.zip``.
"""

import json
import time
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..domain import Platform, PluginPackageRecord, ToolRecord, make_plugin_id
from ..infra.archive import write_zip
from ..sanitize import MAX_NAME_LENGTH, sanitize

logger = logging.getLogger(__name__)

BINARY_PLATFORMS = {
    '.dll': Platform.WINDOWS,
    '.so': Platform.LINUX,
}
MANIFEST_SUFFIX = "_tools.json"


@dataclass
class RepackageResult:
    """Packages built from one scratch directory."""
    packages: List[PluginPackageRecord] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)  # Binary file names

    @property
    def success(self) -> bool:
        return bool(self.packages)


def parse_manifest(path: Path) -> Tuple[Dict[str, str], List[ToolRecord]]:
    """
    Read a tool manifest.

    Accepts either a bare list of tools or an object with a ``tools`` list
    and optional ``name``/``version``/``description``/``author`` fields.
    Unreadable manifests yield no metadata and no tools.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Cannot parse manifest {path.name}: {e}")
        return {}, []

    meta: Dict[str, str] = {}
    if isinstance(data, dict):
        for key in ('name', 'version', 'description', 'author'):
            value = data.get(key)
            if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                meta[key] = str(value)
        tools_data: Any = data.get('tools', [])
    else:
        tools_data = data

    tools = []
    if isinstance(tools_data, list):
        for item in tools_data:
            if isinstance(item, dict) and item.get('name'):
                tools.append(ToolRecord.from_dict(item))
    return meta, tools


class Repackager:
    """
    Builds per-platform plugin bundles from an extracted archive.

    Example:
        repackager = Repackager(Path("plugin_repo"), owner="acme")
        result = repackager.repackage(Path("plugin_repo/v1.2.0/.scratch-0"), "v1.2.0")
        for package in result.packages:
            print(package.local_path)
    """

    def __init__(
        self,
        repo_root: Path,
        owner: str = "",
        max_path_length: int = 260,
        max_dir_length: int = 200,
        clock: Callable[[], float] = time.time,
    ):
        self.repo_root = Path(repo_root)
        self.owner = owner
        self.max_path_length = max_path_length
        self.max_dir_length = max_dir_length
        self._clock = clock

    def find_binaries(self, scratch_dir: Path) -> List[Tuple[Path, Platform]]:
        """Top-level plugin binaries in name order."""
        found = []
        for entry in sorted(Path(scratch_dir).iterdir()):
            if not entry.is_file():
                continue
            platform = BINARY_PLATFORMS.get(entry.suffix.lower())
            if platform is not None:
                found.append((entry, platform))
        return found

    def repackage(self, scratch_dir: Path, tag_name: str,
                  release_date: str = "") -> RepackageResult:
        """
        Bundle every binary+manifest pair found in ``scratch_dir``.

        Binaries without a manifest, or whose output path would be too
        long, are skipped. ``success`` is True if at least one bundle was
        written.
        """
        scratch_dir = Path(scratch_dir)
        tag_name = sanitize(tag_name)
        result = RepackageResult()

        for binary, platform in self.find_binaries(scratch_dir):
            package = self._package_one(binary, platform, tag_name, release_date)
            if package is None:
                result.skipped.append(binary.name)
            else:
                result.packages.append(package)

        return result

    def _package_one(self, binary: Path, platform: Platform, tag_name: str,
                     release_date: str) -> Optional[PluginPackageRecord]:
        plugin_name = sanitize(binary.stem)
        manifest = binary.parent / sanitize(f"{binary.stem}{MANIFEST_SUFFIX}")
        if not manifest.is_file():
            logger.warning(f"Manifest {manifest.name} not found for plugin {plugin_name}")
            return None

        output_dir = self.repo_root / tag_name / platform.value
        if len(str(output_dir)) > self.max_dir_length:
            logger.warning(f"Output directory path too long, skipping: {output_dir}")
            return None

        package_name = f"{plugin_name}_{tag_name}_{int(self._clock())}.zip"
        if len(package_name) > MAX_NAME_LENGTH:
            logger.warning(f"Package name too long, skipping: {package_name}")
            return None

        package_path = output_dir / package_name
        if len(str(package_path)) > self.max_path_length:
            logger.warning(f"Package path too long, skipping: {package_path}")
            return None

        try:
            write_zip(package_path, [binary, manifest])
        except OSError as e:
            logger.error(f"Failed to write {package_path}: {e}")
            return None

        meta, tools = parse_manifest(manifest)
        logger.info(f"Created plugin package: {package_path}")

        return PluginPackageRecord(
            id=make_plugin_id(self.owner, plugin_name) if self.owner else plugin_name,
            name=meta.get('name') or plugin_name,
            version=meta.get('version', ''),
            description=meta.get('description', ''),
            author=meta.get('author') or self.owner,
            release_date=release_date,
            tag_name=tag_name,
            local_path=str(package_path),
            platform=platform,
            tools=tools,
        )
