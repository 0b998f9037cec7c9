"""
Operation result domain objects for pluginrepo.

Provides standardized result types for sync operations that download,
extract and repackage release tags.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional


class OperationStatus(Enum):
    """Status of an individual operation."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class OperationDetail:
    """
    Details of a single operation on one release tag.

    Used to track what happened to each tag during bulk processing.
    """
    tag_name: str
    status: OperationStatus
    action: str  # e.g., "processed", "already_processed", "no_packages"
    message: Optional[str] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'tag': self.tag_name,
            'status': self.status.value,
            'action': self.action,
        }
        if self.message:
            result['message'] = self.message
        if self.error:
            result['error'] = self.error
        if self.metadata:
            result.update(self.metadata)
        return result


@dataclass
class TagProcessResult:
    """
    Outcome of processing one tag: what was downloaded, what failed, and
    which packages were produced.
    """
    tag_name: str
    skipped: bool = False  # Already processed, nothing done
    downloaded: List[str] = field(default_factory=list)
    download_failures: List[str] = field(default_factory=list)
    extraction_failures: List[str] = field(default_factory=list)
    packages: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.skipped or bool(self.packages)

    def to_detail(self) -> OperationDetail:
        """Fold into an OperationDetail for summaries."""
        if self.skipped:
            return OperationDetail(
                tag_name=self.tag_name,
                status=OperationStatus.SKIPPED,
                action="already_processed",
            )
        metadata = {
            'downloaded': len(self.downloaded),
            'download_failures': len(self.download_failures),
            'packages': list(self.packages),
        }
        if self.packages:
            return OperationDetail(
                tag_name=self.tag_name,
                status=OperationStatus.SUCCESS,
                action="processed",
                message=f"{len(self.packages)} package(s) built",
                metadata=metadata,
            )
        return OperationDetail(
            tag_name=self.tag_name,
            status=OperationStatus.FAILED,
            action="no_packages",
            error=self.error or "no plugin packages produced",
            metadata=metadata,
        )


_COUNTERS = {
    OperationStatus.SUCCESS: "successful",
    OperationStatus.SKIPPED: "skipped",
    OperationStatus.FAILED: "failed",
}


@dataclass
class OperationSummary:
    """
    Counts and per-tag details of one pass over the known tags.
    """
    operation: str  # e.g., "process_all", "sync"
    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    details: List[OperationDetail] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    def add_detail(self, detail: OperationDetail) -> None:
        """Record one tag outcome and bump the matching counter."""
        self.details.append(detail)
        self.total += 1
        counter = _COUNTERS[detail.status]
        setattr(self, counter, getattr(self, counter) + 1)
        if detail.status is OperationStatus.FAILED and detail.error:
            self.errors.append(f"{detail.tag_name}: {detail.error}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'type': 'summary',
            'operation': self.operation,
            'total': self.total,
            'successful': self.successful,
            'skipped': self.skipped,
            'failed': self.failed,
            'errors': self.errors,
            'details': [d.to_dict() for d in self.details],
        }
