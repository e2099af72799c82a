"""
Engine writing batches of files with create-or-update semantics
and per-file failure isolation.
"""

import asyncio
from typing import Callable, List, Sequence, Union

from ..infrastructure.error_handler import ErrorKind
from ..infrastructure.logger import logger
from ..models import BatchResult, BranchRef, FileEntry, TransferOutcome
from ..services import GitHubContentStore


CommitMessagePolicy = Union[str, Callable[[str], str]]


def add_message(path: str) -> str:
    return f"Add {path}"


def upload_message(path: str) -> str:
    return f"Upload {path}"


def _resolve_message(policy: CommitMessagePolicy, path: str) -> str:
    if callable(policy):
        return policy(path)
    return policy


####
##      TRANSFER ENGINE
#####
class TransferEngine:
    """
    Writes files to a destination branch, one independent
    lookup-then-write sequence per path.

    Lookups run up to ``max_concurrent_transfers`` at a time. Writes are
    limited to ``max_concurrent_writes`` (one by default): GitHub rejects
    overlapping Contents API commits on the same branch with 409.
    """

    def __init__(
        self,
        store: GitHubContentStore,
        max_concurrent_transfers: int = 5,
        max_concurrent_writes: int = 1,
    ):
        if max_concurrent_transfers <= 0:
            raise ValueError("max_concurrent_transfers must be positive")
        if max_concurrent_writes <= 0:
            raise ValueError("max_concurrent_writes must be positive")
        self.store = store
        self.max_concurrent_transfers = max_concurrent_transfers
        self.max_concurrent_writes = max_concurrent_writes
        # Shared by every batch and sync using this engine
        self._write_semaphore = asyncio.Semaphore(max_concurrent_writes)

    async def transfer(
        self,
        destination: BranchRef,
        files: Sequence[FileEntry],
        commit_message: CommitMessagePolicy = add_message,
    ) -> BatchResult:
        """
        Write every file and aggregate outcomes.

        Args:
            destination: Existing branch to write to
            files: Files to write
            commit_message: Fixed message or a callable of the path

        Returns:
            BatchResult with one outcome per file, in input order
        """
        logger.info(f"Uploading {len(files)} files to {destination.display_name}...")

        semaphore = asyncio.Semaphore(self.max_concurrent_transfers)

        async def _bounded(entry: FileEntry) -> TransferOutcome:
            async with semaphore:
                return await self.write_encoded(
                    destination,
                    entry.path,
                    entry.encoded(),
                    _resolve_message(commit_message, entry.path),
                )

        results = await asyncio.gather(
            *(_bounded(entry) for entry in files), return_exceptions=True
        )

        outcomes: List[TransferOutcome] = []
        for entry, result in zip(files, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(f"Error uploading {entry.path}: {result}")
                outcomes.append(TransferOutcome(entry.path, False, str(result)))
            else:
                outcomes.append(result)

        batch = BatchResult.from_outcomes(outcomes)
        logger.info(
            f"Upload complete: {batch.summary.successful}/{batch.summary.total} successful"
        )
        return batch

    async def write_encoded(
        self,
        destination: BranchRef,
        path: str,
        content_b64: str,
        message: str,
    ) -> TransferOutcome:
        """
        Look up the current revision of ``path`` then write it.

        The lookup always precedes the write, so an existing path is
        updated with its token and an absent one is created without.
        Failures are returned as outcomes, never raised.
        """
        repository = destination.repository
        try:
            handle = await self.store.find_file_handle(repository, path, destination.name)
            async with self._write_semaphore:
                await self.store.put_file(
                    repository,
                    path,
                    content_b64,
                    message,
                    destination.name,
                    revision_token=handle.revision_token if handle else None,
                )
        except Exception as e:
            kind = getattr(e, 'kind', ErrorKind.UNKNOWN)
            logger.error(f"Failed to upload {path}: {e}")
            return TransferOutcome(path, False, str(e), kind.value)

        logger.debug(f"Successfully uploaded: {path}")
        return TransferOutcome(path, True)


__all__ = [
    "CommitMessagePolicy",
    "TransferEngine",
    "add_message",
    "upload_message",
]
