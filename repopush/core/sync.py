"""
Copies every file of a source branch into a destination branch.
"""

import asyncio
from typing import Optional

from ..infrastructure.logger import logger
from ..models import BranchRef, SyncResult, TreeEntry
from .branch_resolver import BranchResolver
from .transfer import TransferEngine
from .tree_enumerator import TreeEnumerator


class SyncOrchestrator:
    """
    Composes branch resolution, tree enumeration and the transfer
    engine into a branch-to-branch content sync.
    """

    def __init__(
        self,
        branch_resolver: BranchResolver,
        enumerator: TreeEnumerator,
        engine: TransferEngine,
        max_files: int = 100,
    ):
        self.branch_resolver = branch_resolver
        self.enumerator = enumerator
        self.engine = engine
        self.max_files = max_files

    async def sync_branch(
        self,
        source: BranchRef,
        destination: BranchRef,
        max_files: Optional[int] = None,
    ) -> SyncResult:
        """
        Merge the files of ``source`` into ``destination``.

        Structural failures (destination branch, source tree, ceiling)
        raise before any file is written. Per-file failures are logged
        and only counted.

        Returns:
            SyncResult with the number of files written and found
        """
        logger.info(f"Syncing {source.display_name} -> {destination.display_name}")

        await self.branch_resolver.ensure_branch(destination.repository, destination.name)

        listing = await self.enumerator.enumerate(
            source.repository, source.name, max_files or self.max_files
        )
        logger.info(f"Found {listing.count} files to sync")

        semaphore = asyncio.Semaphore(self.engine.max_concurrent_transfers)

        async def _bounded(entry: TreeEntry) -> bool:
            async with semaphore:
                return await self._sync_file(source, destination, entry)

        synced = await asyncio.gather(*(_bounded(entry) for entry in listing.entries))
        files_synced = sum(1 for ok in synced if ok)

        logger.info(f"Sync complete: {files_synced}/{listing.count} files synced")
        return SyncResult(files_synced=files_synced, total_files=listing.count)

    async def _sync_file(self, source: BranchRef, destination: BranchRef, entry: TreeEntry) -> bool:
        try:
            content = await self.enumerator.store.get_file_content(
                source.repository, entry.path, source.name
            )
        except Exception as e:
            logger.error(f"Error syncing {entry.path}: {e}")
            return False

        outcome = await self.engine.write_encoded(
            destination,
            entry.path,
            "".join(content.content_b64.split()),
            f"Sync: Merged {entry.path} from {source.repository.name}:{source.name}",
        )
        if outcome.success:
            logger.debug(f"Synced: {entry.path}")
        return outcome.success


__all__ = ["SyncOrchestrator"]
