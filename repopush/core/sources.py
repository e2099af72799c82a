"""
Builders turning user-supplied content into FileEntry lists.
"""

import io
import os
import re
import zipfile
from pathlib import Path
from typing import List, Mapping, Optional, Union

from ..infrastructure.error_handler import InvalidInputError
from ..models import FileEntry, RepositoryRef


SKIPPED_DIRECTORIES = frozenset({'.git', '.hg', '.svn', '__MACOSX'})
SKIPPED_FILES = frozenset({'.DS_Store'})

_GITHUB_URL = re.compile(
    r'github\.com[/:](?P<owner>[^/\s]+)/(?P<name>[^/\s#?]+?)(?:\.git)?(?:[/#?].*)?$'
)


def files_from_mapping(mapping: Mapping[str, Union[str, bytes]]) -> List[FileEntry]:
    """Inline ``{path: content}`` map; text is stored as UTF-8."""

    return [FileEntry.coerce(path, content) for path, content in mapping.items()]


def files_from_directory(root: Union[str, Path]) -> List[FileEntry]:
    """
    Read every regular file below ``root``.

    Paths are relative to ``root`` and slash separated whatever the
    platform. Version control and OS metadata directories are not
    descended into.
    """
    root = Path(root)
    if not root.is_dir():
        raise InvalidInputError(f"Not a directory: {root}")

    files: List[FileEntry] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRECTORIES)
        current = Path(dirpath)
        for name in filenames:
            file_path = current / name
            if name in SKIPPED_FILES or not file_path.is_file():
                continue
            files.append(FileEntry(file_path.relative_to(root).as_posix(), file_path.read_bytes()))
    return sorted(files, key=lambda entry: entry.path)


def _archive_path(name: str) -> Optional[str]:
    """Slash-separated member path, or None for members to leave out."""

    parts = [part for part in name.replace('\\', '/').split('/') if part]
    if not parts or parts[-1] in SKIPPED_FILES:
        return None
    if any(part in SKIPPED_DIRECTORIES for part in parts[:-1]):
        return None
    return '/'.join(parts)


def files_from_archive(data: bytes) -> List[FileEntry]:
    """
    Extract a zip archive in memory; directory entries are skipped.

    Backslash separators written by some Windows tools are read as
    directory separators. Version control and OS metadata entries, such
    as the ``__MACOSX`` resource forks, are left out.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise InvalidInputError("Please ensure the file is a valid ZIP archive", e)

    files: List[FileEntry] = []
    with archive:
        for info in archive.infolist():
            path = None if info.is_dir() else _archive_path(info.filename)
            if path is not None:
                files.append(FileEntry(path, archive.read(info)))
    return files


def parse_repository_url(url: str) -> RepositoryRef:
    """
    Extract owner and name from a GitHub URL.

    Accepts ``https://github.com/owner/repo``, a trailing ``.git``
    and the ``git@github.com:owner/repo`` form.
    """
    match = _GITHUB_URL.search(url.strip()) if url else None
    if not match:
        raise InvalidInputError(f"Invalid GitHub URL format: {url!r}")
    return RepositoryRef(owner=match.group('owner'), name=match.group('name'))


__all__ = [
    "files_from_mapping",
    "files_from_directory",
    "files_from_archive",
    "parse_repository_url",
]
