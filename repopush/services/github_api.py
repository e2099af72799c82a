"""
Thin async accessor for the GitHub REST endpoints RepoPush needs.

Every public method maps to exactly one remote call and performs no
retry or orchestration. Failures surface as RepoPush taxonomy errors.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..infrastructure.error_handler import (
    ConflictError,
    NotFoundError,
    UpstreamUnavailableError,
    handle_api_error,
    raise_for_status,
)
from ..infrastructure.logger import logger
from ..models import (
    BranchRef,
    ContentEntry,
    FileContent,
    FileWriteResult,
    GitHubIdentity,
    PullRequestInfo,
    PushConfig,
    RemoteFileHandle,
    RepositoryInfo,
    RepositoryRef,
    TreeEntry,
)


def _quote_path(path: str) -> str:
    return quote(path, safe='/')


class GitHubContentStore:
    """
    Request/response client over the GitHub repository, ref, tree and
    contents endpoints.
    """

    def __init__(
        self,
        identity: GitHubIdentity,
        config: Optional[PushConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.identity = identity
        self.config = config or PushConfig()
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url,
            headers={
                'Authorization': f'Bearer {identity.access_token}',
                'Accept': 'application/vnd.github.v3+json',
                'User-Agent': self.config.user_agent,
            },
            timeout=self.config.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubContentStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug(f"{method} {url}")
        return await self._client.request(method, url, **kwargs)

    @staticmethod
    def _repo_path(ref: RepositoryRef) -> str:
        return f"/repos/{quote(ref.owner, safe='')}/{quote(ref.name, safe='')}"

    @staticmethod
    def _repository_info(ref: RepositoryRef, data: Dict[str, Any]) -> RepositoryInfo:
        owner = (data.get('owner') or {}).get('login') or ref.owner
        return RepositoryInfo(
            ref=RepositoryRef(owner=owner, name=data.get('name') or ref.name),
            exists=True,
            default_branch=data.get('default_branch'),
            html_url=data.get('html_url'),
            private=bool(data.get('private', False)),
        )

    # ---- Repositories ----------------------------------------------------

    @handle_api_error
    async def get_repository(self, ref: RepositoryRef) -> RepositoryInfo:
        """
        Look up a repository.

        Returns:
            RepositoryInfo with ``exists=False`` on 404

        Raises:
            RepoPushError: For any other unsuccessful response
        """
        response = await self._request('GET', self._repo_path(ref))
        if response.status_code == 404:
            return RepositoryInfo(ref=ref, exists=False)
        raise_for_status(response, f"Fetch repository {ref.full_name}")
        return self._repository_info(ref, response.json())

    @handle_api_error
    async def create_repository(self, name: str, private: Optional[bool] = None) -> RepositoryInfo:
        """Create a repository for the authenticated user with an initial commit."""

        response = await self._request('POST', '/user/repos', json={
            'name': name,
            'auto_init': True,
            'private': self.config.private_repositories if private is None else private,
        })
        raise_for_status(response, f"Create repository {name}")
        data = response.json()
        logger.info(f"Repository created: {data.get('html_url')}")
        return self._repository_info(RepositoryRef(self.identity.account_name, name), data)

    @handle_api_error
    async def delete_repository(self, ref: RepositoryRef) -> None:
        """
        Delete a repository.

        Raises:
            InsufficientScopeError: If the token lacks ``delete_repo``
        """
        response = await self._request('DELETE', self._repo_path(ref))
        raise_for_status(response, f"Delete repository {ref.full_name}")

    @handle_api_error
    async def list_repositories(self) -> List[RepositoryInfo]:
        """List the authenticated user's repositories, most recently updated first."""

        response = await self._request(
            'GET', '/user/repos', params={'sort': 'updated', 'per_page': 100}
        )
        raise_for_status(response, "List repositories")
        owner = self.identity.account_name
        return [
            self._repository_info(RepositoryRef(owner, item['name']), item)
            for item in response.json()
        ]

    # ---- Branches and refs -----------------------------------------------

    @handle_api_error
    async def get_branch(self, ref: RepositoryRef, name: str) -> bool:
        response = await self._request(
            'GET', f"{self._repo_path(ref)}/branches/{_quote_path(name)}"
        )
        if response.status_code == 404:
            return False
        raise_for_status(response, f"Fetch branch {name}")
        return True

    @handle_api_error
    async def list_branches(self, ref: RepositoryRef) -> List[BranchRef]:
        response = await self._request(
            'GET', f"{self._repo_path(ref)}/branches", params={'per_page': 100}
        )
        raise_for_status(response, f"List branches of {ref.full_name}")
        return [
            BranchRef(
                repository=ref,
                name=item['name'],
                base_sha=(item.get('commit') or {}).get('sha'),
            )
            for item in response.json()
        ]

    @handle_api_error
    async def get_ref_tip(self, ref: RepositoryRef, branch: str) -> str:
        """
        Resolve the commit sha a branch points at.

        Raises:
            NotFoundError: If the branch does not exist
        """
        response = await self._request(
            'GET', f"{self._repo_path(ref)}/git/refs/heads/{_quote_path(branch)}"
        )
        raise_for_status(response, f"Fetch ref heads/{branch}")
        data = response.json()
        if isinstance(data, list):
            # Partial matches come back as a list; only an exact ref counts
            raise NotFoundError(f"Ref heads/{branch} not found")
        return data['object']['sha']

    @handle_api_error
    async def create_branch(self, ref: RepositoryRef, name: str, from_sha: str) -> None:
        """
        Create ``refs/heads/<name>`` at ``from_sha``.

        Raises:
            ConflictError: If the ref already exists
        """
        response = await self._request('POST', f"{self._repo_path(ref)}/git/refs", json={
            'ref': f'refs/heads/{name}',
            'sha': from_sha,
        })
        raise_for_status(response, f"Create branch {name}")

    # ---- Trees and contents ----------------------------------------------

    @handle_api_error
    async def get_tree(self, ref: RepositoryRef, branch: str, recursive: bool = True) -> List[TreeEntry]:
        """
        List a tree by branch name.

        Raises:
            NotFoundError: If ``branch`` does not resolve to a commit
        """
        params = {'recursive': '1'} if recursive else {}
        response = await self._request(
            'GET', f"{self._repo_path(ref)}/git/trees/{_quote_path(branch)}", params=params
        )
        if response.status_code in (404, 409, 422):
            raise NotFoundError(
                f"Tree {ref.full_name}@{branch} not found", status_code=response.status_code
            )
        raise_for_status(response, f"Fetch tree {ref.full_name}@{branch}")
        data = response.json()
        if data.get('truncated'):
            logger.warning(f"Tree listing for {ref.full_name}@{branch} was truncated")
        return [
            TreeEntry(
                path=item['path'],
                type=item['type'],
                sha=item.get('sha'),
                size=item.get('size'),
            )
            for item in data.get('tree', [])
        ]

    @handle_api_error
    async def get_file_content(
        self,
        ref: RepositoryRef,
        path: str,
        ref_name: Optional[str] = None,
    ) -> FileContent:
        """
        Fetch one file with its revision token.

        Files too large for inline content are read through the blobs API.

        Raises:
            NotFoundError: If the path does not exist at ``ref_name``
            UpstreamUnavailableError: If the full content cannot be retrieved
        """
        params = {'ref': ref_name} if ref_name else None
        response = await self._request(
            'GET', f"{self._repo_path(ref)}/contents/{_quote_path(path)}", params=params
        )
        raise_for_status(response, f"Fetch {path}")
        data = response.json()
        if isinstance(data, list) or data.get('type') != 'file':
            raise NotFoundError(f"{path} is not a file")
        content = FileContent(
            path=data.get('path', path),
            content_b64=data.get('content') or '',
            revision_token=data['sha'],
            size=data.get('size'),
        )
        if data.get('encoding') != 'base64':
            # Files over 1 MB come back without inline content
            logger.debug(f"{path} has no inline content, fetching its blob")
            content = await self.get_blob(ref, content.revision_token, content.path)

        if content.size is not None and len(content.decoded) != content.size:
            raise UpstreamUnavailableError(
                f"Content of {path} is incomplete "
                f"({len(content.decoded)} of {content.size} bytes)"
            )
        return content

    @handle_api_error
    async def get_blob(self, ref: RepositoryRef, sha: str, path: str) -> FileContent:
        """
        Fetch file bytes through the git blobs API (up to 100 MB).

        Raises:
            UpstreamUnavailableError: If the blob is not returned as base64
        """
        response = await self._request('GET', f"{self._repo_path(ref)}/git/blobs/{sha}")
        raise_for_status(response, f"Fetch blob of {path}")
        data = response.json()
        if data.get('encoding') != 'base64':
            raise UpstreamUnavailableError(f"Blob of {path} was not returned as base64")
        return FileContent(
            path=path,
            content_b64=data.get('content') or '',
            revision_token=sha,
            size=data.get('size'),
        )

    @handle_api_error
    async def list_contents(
        self,
        ref: RepositoryRef,
        path: str = '',
        ref_name: Optional[str] = None,
    ) -> List[ContentEntry]:
        """
        List the entries of a directory; a file path yields a single entry.

        Raises:
            NotFoundError: If the path or ref does not exist
        """
        params = {'ref': ref_name} if ref_name else None
        url = f"{self._repo_path(ref)}/contents"
        if path:
            url = f"{url}/{_quote_path(path.strip('/'))}"
        response = await self._request('GET', url, params=params)
        raise_for_status(response, f"List {path or 'repository root'}")
        data = response.json()
        if isinstance(data, dict):
            data = [data]
        return [
            ContentEntry(
                name=item['name'],
                path=item['path'],
                type=item.get('type', 'file'),
                sha=item.get('sha'),
                size=item.get('size'),
            )
            for item in data
        ]

    @handle_api_error
    async def find_file_handle(
        self,
        ref: RepositoryRef,
        path: str,
        ref_name: Optional[str] = None,
    ) -> Optional[RemoteFileHandle]:
        """Look up the current revision of ``path``; None if it is absent."""

        params = {'ref': ref_name} if ref_name else None
        response = await self._request(
            'GET', f"{self._repo_path(ref)}/contents/{_quote_path(path)}", params=params
        )
        if response.status_code == 404:
            return None
        raise_for_status(response, f"Look up {path}")
        data = response.json()
        if isinstance(data, list):
            raise ConflictError(f"{path} is a directory on the destination")
        return RemoteFileHandle(path=path, revision_token=data['sha'])

    @handle_api_error
    async def put_file(
        self,
        ref: RepositoryRef,
        path: str,
        content_b64: str,
        message: str,
        branch: str,
        revision_token: Optional[str] = None,
    ) -> FileWriteResult:
        """
        Create or update a file.

        A ``revision_token`` selects update semantics; without one the
        path is created.

        Raises:
            ConflictError: If the token is stale, or missing for an existing path
        """
        body = {
            'message': message,
            'content': content_b64,
            'branch': branch,
        }
        if revision_token:
            body['sha'] = revision_token
        response = await self._request(
            'PUT', f"{self._repo_path(ref)}/contents/{_quote_path(path)}", json=body
        )
        raise_for_status(response, f"Write {path}")
        data = response.json()
        return FileWriteResult(
            path=path,
            revision_token=(data.get('content') or {}).get('sha'),
            commit_sha=(data.get('commit') or {}).get('sha'),
        )

    @handle_api_error
    async def delete_file(
        self,
        ref: RepositoryRef,
        path: str,
        revision_token: str,
        message: str,
        branch: str,
    ) -> None:
        response = await self._request(
            'DELETE', f"{self._repo_path(ref)}/contents/{_quote_path(path)}", json={
                'message': message,
                'sha': revision_token,
                'branch': branch,
            }
        )
        raise_for_status(response, f"Delete {path}")

    # ---- Pull requests ---------------------------------------------------

    @handle_api_error
    async def create_pull_request(
        self,
        ref: RepositoryRef,
        title: str,
        head: str,
        base: str,
        body: str = '',
    ) -> PullRequestInfo:
        """
        Open a pull request merging ``head`` into ``base``.

        Raises:
            ConflictError: If GitHub refuses it, e.g. nothing to merge
        """
        response = await self._request('POST', f"{self._repo_path(ref)}/pulls", json={
            'title': title,
            'head': head,
            'base': base,
            'body': body,
        })
        if response.status_code == 422:
            errors = response.json().get('errors') or []
            detail = None
            if errors and isinstance(errors[0], dict):
                detail = errors[0].get('message')
            detail = detail or "No changes to merge between these branches"
            raise ConflictError(
                f"Create pull request failed: {detail}", status_code=422, detail=detail
            )
        raise_for_status(response, f"Create pull request {head} -> {base}")
        data = response.json()
        logger.info(f"Pull request created: {data.get('html_url')}")
        return PullRequestInfo(
            number=data['number'], html_url=data['html_url'], head=head, base=base
        )


__all__ = ["GitHubContentStore"]
