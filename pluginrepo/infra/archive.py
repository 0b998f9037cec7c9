"""
Zip archive handling for pluginrepo.

ArchiveExtractor unpacks downloaded release archives into a scratch
directory. Entry names are untrusted: each one is sanitized into a single
path component before it touches the filesystem, so "../" style entries
cannot escape the destination. write_zip builds the per-platform bundles.
"""

import os
import shutil
import tempfile
import zipfile
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from ..errors import ExtractionError, PathTooLongError
from ..sanitize import sanitize

logger = logging.getLogger(__name__)

DEFAULT_MAX_PATH_LENGTH = 260


@dataclass
class ExtractionResult:
    """What an extraction produced."""
    archive: Path
    extracted: List[Path] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)   # Entry names
    failed: List[str] = field(default_factory=list)    # Entry names

    @property
    def success(self) -> bool:
        """False if any entry failed; skipped entries don't count."""
        return not self.failed


class ArchiveExtractor:
    """
    Safe zip extraction.

    Example:
        result = ArchiveExtractor().extract(Path("v1/plugins.zip"), Path("v1/scratch"))
        if not result.success:
            print(result.failed)
    """

    def __init__(self, max_path_length: int = DEFAULT_MAX_PATH_LENGTH):
        self.max_path_length = max_path_length

    def extract(self, archive_path: Path, dest_dir: Path) -> ExtractionResult:
        """
        Extract every entry of ``archive_path`` into ``dest_dir``.

        Entries are flattened into ``dest_dir``; an entry that fails is
        recorded and the rest are still written.

        Raises:
            ExtractionError: archive missing or not a readable zip
            PathTooLongError: archive path over the ceiling
        """
        archive_path = Path(archive_path)
        dest_dir = Path(dest_dir)

        if not archive_path.is_file():
            raise ExtractionError(f"Archive does not exist: {archive_path}")
        if len(str(archive_path)) > self.max_path_length:
            raise PathTooLongError(archive_path, self.max_path_length)

        result = ExtractionResult(archive=archive_path)

        try:
            zf = zipfile.ZipFile(archive_path)
        except (zipfile.BadZipFile, OSError) as e:
            raise ExtractionError(f"Cannot open {archive_path}: {e}") from e

        with zf:
            dest_dir.mkdir(parents=True, exist_ok=True)
            for info in zf.infolist():
                self._extract_entry(zf, info, dest_dir, result)

        logger.debug(
            f"Extracted {len(result.extracted)} entries from {archive_path.name} "
            f"({len(result.skipped)} skipped, {len(result.failed)} failed)"
        )
        return result

    def _extract_entry(self, zf: zipfile.ZipFile, info: zipfile.ZipInfo,
                       dest_dir: Path, result: ExtractionResult) -> None:
        raw_name = info.filename
        if not raw_name:
            logger.warning("Skipping zip entry with empty name")
            result.skipped.append(raw_name)
            return

        is_dir = info.is_dir()
        safe_name = sanitize(raw_name.rstrip('/') if is_dir else raw_name)
        target = dest_dir / safe_name

        if len(str(target)) > self.max_path_length:
            logger.warning(f"Output path too long, skipping: {target}")
            result.skipped.append(raw_name)
            return

        try:
            if is_dir:
                target.mkdir(parents=True, exist_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, 'wb') as dst:
                    shutil.copyfileobj(src, dst)
            result.extracted.append(target)
        except (OSError, zipfile.BadZipFile, RuntimeError, ValueError) as e:
            # RuntimeError: encrypted entry; BadZipFile: CRC mismatch
            logger.error(f"Failed to extract {raw_name!r}: {e}")
            result.failed.append(raw_name)


def write_zip(dest: Path, members: Sequence[Path]) -> Path:
    """
    Write ``members`` into a new deflated zip at ``dest``.

    Each member is stored under its base name. The archive is built in a
    temp file and renamed into place.
    """
    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
    os.close(fd)

    try:
        with zipfile.ZipFile(temp_path, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
            for member in members:
                zf.write(member, arcname=Path(member).name)
        os.replace(temp_path, dest)
    except BaseException:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise

    return dest
