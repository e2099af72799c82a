"""
Enumerates the blobs of a remote tree under a file-count ceiling.
"""

from typing import AsyncIterator, Iterable, Optional

from ..infrastructure.error_handler import NotFoundError, TooLargeError
from ..infrastructure.logger import logger
from ..models import EnumerationResult, FileEntry, RepositoryRef, TreeEntry
from ..models.transfer import ContentEncoding
from ..services import GitHubContentStore


class TreeEnumerator:
    """Lists source files and lazily fetches their content."""

    def __init__(self, store: GitHubContentStore):
        self.store = store

    async def enumerate(
        self,
        ref: RepositoryRef,
        branch: str,
        max_files: int,
        fallback_branch: Optional[str] = None,
    ) -> EnumerationResult:
        """
        List blob entries of ``ref`` at ``branch``.

        Args:
            ref: Source repository
            branch: Branch to read
            max_files: Ceiling on the number of blobs
            fallback_branch: Tried once if ``branch`` does not resolve

        Returns:
            EnumerationResult with the branch actually read

        Raises:
            NotFoundError: If neither branch resolves
            TooLargeError: If the blob count exceeds ``max_files``
        """
        try:
            tree = await self.store.get_tree(ref, branch, recursive=True)
        except NotFoundError:
            if not fallback_branch or fallback_branch == branch:
                raise
            logger.info(
                f"Branch {branch} not found in {ref.full_name}, trying {fallback_branch}"
            )
            branch = fallback_branch
            tree = await self.store.get_tree(ref, branch, recursive=True)

        blobs = [entry for entry in tree if entry.is_blob]
        if len(blobs) > max_files:
            raise TooLargeError(
                len(blobs),
                max_files,
                f"Repository is too large ({len(blobs)} files). Maximum "
                f"{max_files} files allowed.",
            )

        logger.debug(f"Enumerated {len(blobs)} files in {ref.full_name}@{branch}")
        return EnumerationResult(branch=branch, entries=blobs)

    async def iter_files(
        self,
        ref: RepositoryRef,
        branch: str,
        entries: Iterable[TreeEntry],
    ) -> AsyncIterator[FileEntry]:
        """
        Fetch and decode each entry in order.

        A fetch failure ends the iteration; use :meth:`fetch_file` to
        handle failures per entry.
        """
        for entry in entries:
            yield await self.fetch_file(ref, branch, entry)

    async def fetch_file(self, ref: RepositoryRef, branch: str, entry: TreeEntry) -> FileEntry:
        content = await self.store.get_file_content(ref, entry.path, branch)
        return FileEntry(entry.path, content.decoded, ContentEncoding.BASE64)


__all__ = ["TreeEnumerator"]
