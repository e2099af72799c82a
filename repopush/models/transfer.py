"""
Transfer domain models for RepoPush.

This module contains data classes and enums representing files to push,
per-file outcomes, batch summaries and the request/result structs of the
public operations.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

from ..infrastructure.error_handler import InvalidInputError
from .github import BranchRef, RepositoryInfo, TreeEntry


class ImportMode(Enum):
    """How an existing destination repository is treated."""

    ADD = "add"              # Reuse or create, never delete
    OVERWRITE = "overwrite"  # Delete and recreate before writing


class ContentEncoding(Enum):
    """Encoding the file content was supplied in."""

    UTF8 = "utf8"
    BASE64 = "base64"


_ILLEGAL_PATH_CHARS = ('\\', '\x00')


def validate_path(path: str) -> str:
    """Return ``path`` if it is a safe, relative POSIX path."""

    if not path or not isinstance(path, str):
        raise InvalidInputError("File path must be a non-empty string")
    if path.startswith('/'):
        raise InvalidInputError(f"File path must be relative: {path!r}")
    if any(ch in path for ch in _ILLEGAL_PATH_CHARS):
        raise InvalidInputError(f"File path contains illegal characters: {path!r}")

    segments = path.split('/')
    if any(segment in ('', '.', '..') for segment in segments):
        raise InvalidInputError(f"File path contains an illegal segment: {path!r}")
    return path


@dataclass(frozen=True)
class FileEntry:
    """A single file to write; content is always held as raw bytes."""

    path: str
    content: bytes
    content_encoding: ContentEncoding = ContentEncoding.UTF8

    def __post_init__(self) -> None:
        validate_path(self.path)
        if not isinstance(self.content, (bytes, bytearray)):
            raise InvalidInputError(f"Content of {self.path!r} must be bytes")

    @classmethod
    def from_text(cls, path: str, text: str) -> FileEntry:
        return cls(path, text.encode('utf-8'), ContentEncoding.UTF8)

    @classmethod
    def from_base64(cls, path: str, encoded: str) -> FileEntry:
        try:
            content = base64.b64decode("".join(encoded.split()), validate=True)
        except ValueError as e:
            raise InvalidInputError(f"Invalid base64 content for {path!r}", e)
        return cls(path, content, ContentEncoding.BASE64)

    @classmethod
    def coerce(cls, path: str, content: Union[str, bytes]) -> FileEntry:
        if isinstance(content, str):
            return cls.from_text(path, content)
        return cls(path, bytes(content), ContentEncoding.BASE64)

    def encoded(self) -> str:
        """Base64 of the raw bytes, safe for binary payloads."""

        return base64.b64encode(bytes(self.content)).decode('ascii')


@dataclass(frozen=True)
class TransferOutcome:
    """Result of one attempted file write."""

    path: str
    success: bool
    error_detail: Optional[str] = None
    error_kind: Optional[str] = None


@dataclass(frozen=True)
class TransferSummary:
    total: int
    successful: int
    failed: int


@dataclass
class BatchResult:
    """Ordered per-file outcomes plus their aggregate counts."""

    results: List[TransferOutcome] = field(default_factory=list)
    summary: TransferSummary = field(default_factory=lambda: TransferSummary(0, 0, 0))

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[TransferOutcome]) -> BatchResult:
        successful = sum(1 for outcome in outcomes if outcome.success)
        return cls(
            results=list(outcomes),
            summary=TransferSummary(
                total=len(outcomes),
                successful=successful,
                failed=len(outcomes) - successful,
            ),
        )

    @property
    def failed_paths(self) -> Dict[str, str]:
        return {
            outcome.path: outcome.error_detail or "unknown error"
            for outcome in self.results if not outcome.success
        }

    @property
    def is_successful(self) -> bool:
        return self.summary.failed == 0


@dataclass(frozen=True)
class EnumerationResult:
    """Blob entries of a source tree and the branch they were read from."""

    branch: str
    entries: List[TreeEntry]

    @property
    def count(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class ProvisionResult:
    """What the provisioner did to make the destination writable."""

    repository: RepositoryInfo
    branch: BranchRef
    created: bool = False
    deleted: bool = False
    branch_created: bool = False


@dataclass
class PushRequest:
    """
    Parameters of a create-and-push operation.

    Exactly one content source is used: ``files`` (inline, folder or
    archive derived) or ``source_url`` (a remote GitHub repository).
    """

    repository_name: str
    files: List[FileEntry] = field(default_factory=list)
    source_url: Optional[str] = None
    source_branch: Optional[str] = None
    import_mode: ImportMode = ImportMode.ADD
    target_branch: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.repository_name:
            raise InvalidInputError("Repository name is required")
        if self.files and self.source_url:
            raise InvalidInputError("Provide either files or a source URL, not both")
        if isinstance(self.import_mode, str):
            try:
                self.import_mode = ImportMode(self.import_mode)
            except ValueError as e:
                raise InvalidInputError(f"Unknown import mode: {self.import_mode}", e)


@dataclass(frozen=True)
class PushResult:
    repository_url: Optional[str]
    repository_name: str
    transfer: BatchResult = field(default_factory=BatchResult)


@dataclass
class SyncRequest:
    """Parameters of a branch-to-branch content sync."""

    source_repository: str
    source_branch: str
    destination_repository: str
    destination_branch: str

    def __post_init__(self) -> None:
        if not all((
            self.source_repository, self.source_branch,
            self.destination_repository, self.destination_branch,
        )):
            raise InvalidInputError("All fields are required")


@dataclass(frozen=True)
class SyncResult:
    files_synced: int
    total_files: int


@dataclass(frozen=True)
class NameAvailability:
    name: str
    available: bool

    @property
    def message(self) -> str:
        if self.available:
            return f'Repository name "{self.name}" is available'
        return f'Repository "{self.name}" already exists'


__all__ = [
    "ImportMode",
    "ContentEncoding",
    "validate_path",
    "FileEntry",
    "TransferOutcome",
    "TransferSummary",
    "BatchResult",
    "EnumerationResult",
    "ProvisionResult",
    "PushRequest",
    "PushResult",
    "SyncRequest",
    "SyncResult",
    "NameAvailability",
]
