"""
Public Python API for RepoPush.

One coroutine per use case, each returning a result struct or raising
a RepoPush error carrying a kind the caller can render.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, Union

import httpx

from ..core import (
    BranchResolver,
    RepositoryProvisioner,
    SyncOrchestrator,
    TransferEngine,
    TreeEnumerator,
    add_message,
    parse_repository_url,
    upload_message,
)
from ..infrastructure.error_handler import (
    AlreadyExistsError,
    ConflictError,
    CredentialNotReadyError,
    ErrorKind,
    InvalidInputError,
    TooLargeError,
)
from ..infrastructure.logger import logger
from ..infrastructure.retry_manager import RetryManager
from ..models import (
    BatchResult,
    BranchRef,
    ContentEntry,
    FileEntry,
    FileWriteResult,
    GitHubIdentity,
    NameAvailability,
    PullRequestInfo,
    PushConfig,
    PushRequest,
    PushResult,
    RepositoryInfo,
    RepositoryRef,
    SyncRequest,
    SyncResult,
    TransferOutcome,
    TreeEntry,
    validate_path,
)
from ..services import GitHubContentStore


IdentityProvider = Callable[[], Awaitable[GitHubIdentity]]
RepositoryLike = Union[str, RepositoryRef]


class RepoPush:
    """
    Push local or remote content into GitHub repositories on behalf of
    one authenticated account.
    """

    def __init__(
        self,
        identity: GitHubIdentity,
        config: Optional[PushConfig] = None,
        verbose: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.identity = identity
        self.config = config or PushConfig()
        self.verbose = verbose

        self.store = GitHubContentStore(identity, self.config, transport=transport)
        self.branch_resolver = BranchResolver(self.store)
        self.enumerator = TreeEnumerator(self.store)
        self.engine = TransferEngine(
            self.store,
            self.config.max_concurrent_transfers,
            self.config.max_concurrent_writes,
        )
        self.provisioner = RepositoryProvisioner(
            self.store, self.branch_resolver, self.config
        )
        self.sync = SyncOrchestrator(
            self.branch_resolver,
            self.enumerator,
            self.engine,
            max_files=self.config.max_sync_files,
        )

        logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    @classmethod
    async def from_provider(
        cls,
        provider: IdentityProvider,
        retry_manager: Optional[RetryManager] = None,
        **kwargs,
    ) -> "RepoPush":
        """
        Resolve the identity through ``provider`` and build a client.

        Only :class:`CredentialNotReadyError` is retried, following the
        given strategy; an invalid credential fails at once.
        """
        retry_manager = retry_manager or RetryManager(max_retries=2, base_delay=2.0)
        identity = await retry_manager.execute(
            provider, exceptions=(CredentialNotReadyError,)
        )
        return cls(identity, **kwargs)

    async def __aenter__(self) -> "RepoPush":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.store.aclose()

    def set_verbose(self, verbose: bool) -> None:
        self.verbose = verbose
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    @property
    def owner(self) -> str:
        return self.identity.account_name

    def _repository(self, repository: RepositoryLike) -> RepositoryRef:
        if isinstance(repository, RepositoryRef):
            return repository
        return RepositoryRef(owner=self.owner, name=repository)

    # ---- Use cases -------------------------------------------------------

    async def create_and_push(self, request: PushRequest) -> PushResult:
        """
        Provision the destination repository and write the content source.

        A remote source is enumerated before the destination is touched,
        so an oversized or missing source never deletes anything.

        Args:
            request: Destination, content source and import mode

        Returns:
            PushResult with the repository URL and per-file outcomes
        """
        listing = None
        source = None
        if request.source_url:
            source = parse_repository_url(request.source_url)
            logger.info(f"Fetching repository contents from {source.full_name}")
            fallback = None if request.source_branch else self.config.fallback_branch
            listing = await self.enumerator.enumerate(
                source,
                request.source_branch or self.config.default_branch,
                self.config.max_import_files,
                fallback_branch=fallback,
            )

        provisioned = await self.provisioner.provision(
            self.owner,
            request.repository_name,
            request.target_branch,
            request.import_mode,
        )

        files: List[FileEntry] = list(request.files)
        fetch_failures: List[TransferOutcome] = []
        if listing is not None:
            files, fetch_failures = await self._fetch_sources(source, listing.branch, listing.entries)
            logger.info(f"Fetched {len(files)} files from source repository")

        batch = BatchResult()
        if files:
            batch = await self.engine.transfer(provisioned.branch, files, add_message)
        if fetch_failures:
            batch = BatchResult.from_outcomes(batch.results + fetch_failures)

        return PushResult(
            repository_url=provisioned.repository.html_url,
            repository_name=request.repository_name,
            transfer=batch,
        )

    async def _fetch_sources(
        self,
        source: RepositoryRef,
        branch: str,
        entries: Sequence[TreeEntry],
    ) -> Tuple[List[FileEntry], List[TransferOutcome]]:
        semaphore = asyncio.Semaphore(self.config.max_concurrent_transfers)

        async def _bounded(entry: TreeEntry) -> FileEntry:
            async with semaphore:
                return await self.enumerator.fetch_file(source, branch, entry)

        results = await asyncio.gather(
            *(_bounded(entry) for entry in entries), return_exceptions=True
        )

        files: List[FileEntry] = []
        failures: List[TransferOutcome] = []
        for entry, result in zip(entries, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to fetch {entry.path}: {result}")
                kind = getattr(result, 'kind', ErrorKind.UNKNOWN)
                failures.append(TransferOutcome(entry.path, False, str(result), kind.value))
            elif isinstance(result, BaseException):
                raise result
            else:
                files.append(result)
        return files, failures

    async def sync_contents(self, request: SyncRequest) -> SyncResult:
        """Merge one of the account's branches into another."""

        source = self._repository(request.source_repository).branch(request.source_branch)
        destination = self._repository(request.destination_repository).branch(
            request.destination_branch
        )
        return await self.sync.sync_branch(source, destination)

    async def upload_batch(
        self,
        files: Sequence[FileEntry],
        destination: BranchRef,
        message: Optional[str] = None,
    ) -> BatchResult:
        """
        Write up to ``max_batch_files`` files to an existing repository.

        Raises:
            TooLargeError: If the batch exceeds the ceiling
            BranchError: If the destination branch cannot be made available
        """
        if len(files) > self.config.max_batch_files:
            raise TooLargeError(
                len(files),
                self.config.max_batch_files,
                f"Too many files. Maximum {self.config.max_batch_files} files per batch.",
            )

        await self.branch_resolver.ensure_branch(destination.repository, destination.name)
        return await self.engine.transfer(destination, files, message or upload_message)

    async def create_single_file(
        self,
        path: str,
        content: Union[str, bytes],
        destination: BranchRef,
        message: Optional[str] = None,
    ) -> FileWriteResult:
        """
        Create a new file; never overwrites.

        Raises:
            AlreadyExistsError: If ``path`` already exists on the branch
        """
        entry = FileEntry.coerce(path, content)
        try:
            result = await self.store.put_file(
                destination.repository,
                entry.path,
                entry.encoded(),
                message or f"Create {entry.path}",
                destination.name,
            )
        except ConflictError as e:
            raise AlreadyExistsError("File already exists", e, status_code=e.status_code)

        logger.info(f"Successfully created file {path}")
        return result

    async def delete_single_file(
        self,
        path: str,
        revision_token: str,
        destination: BranchRef,
        message: Optional[str] = None,
    ) -> None:
        validate_path(path)
        await self.store.delete_file(
            destination.repository,
            path,
            revision_token,
            message or f"Delete {path}",
            destination.name,
        )
        logger.info(f"Deleted {path} from {destination.display_name}")

    async def read_file(self, path: str, branch: BranchRef) -> FileEntry:
        """Read a file back as raw bytes."""

        content = await self.store.get_file_content(branch.repository, validate_path(path), branch.name)
        return FileEntry(path, content.decoded)

    async def list_branches(self, repository: RepositoryLike) -> List[BranchRef]:
        ref = self._repository(repository)
        branches = await self.store.list_branches(ref)
        logger.debug(f"Found {len(branches)} branches in {ref.full_name}")
        return branches

    async def list_repositories(self) -> List[RepositoryInfo]:
        repositories = await self.store.list_repositories()
        logger.debug(f"Found {len(repositories)} repositories for {self.owner}")
        return repositories

    async def list_contents(
        self,
        repository: RepositoryLike,
        path: str = "",
        ref: Optional[str] = None,
    ) -> List[ContentEntry]:
        """List a directory of ``repository``; the root when ``path`` is empty."""

        if path:
            validate_path(path.strip("/"))
        return await self.store.list_contents(self._repository(repository), path, ref)

    async def create_pull_request(
        self,
        repository: RepositoryLike,
        title: str,
        head: str,
        base: str,
        body: Optional[str] = None,
    ) -> PullRequestInfo:
        """
        Open a pull request from ``head`` into ``base``.

        Raises:
            InvalidInputError: If title, head or base is missing
            ConflictError: If GitHub refuses it, e.g. there is nothing to merge
        """
        if not (title and head and base):
            raise InvalidInputError("Title, head branch and base branch are required")

        ref = self._repository(repository)
        pull_request = await self.store.create_pull_request(ref, title, head, base, body or "")
        logger.info(f"Opened pull request #{pull_request.number} on {ref.full_name}")
        return pull_request

    async def check_name_availability(self, name: str) -> NameAvailability:
        repository = await self.store.get_repository(self._repository(name))
        availability = NameAvailability(name=name, available=not repository.exists)
        logger.debug(availability.message)
        return availability


__all__ = ["RepoPush", "IdentityProvider"]
