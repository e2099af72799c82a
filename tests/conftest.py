"""
Shared fixtures: an in-memory GitHub served through httpx.MockTransport.
"""

import base64
import hashlib
import itertools
import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

import httpx
import pytest

from repopush.interfaces.api import RepoPush
from repopush.models import GitHubIdentity, PushConfig


ACCOUNT = "octo"


def blob_sha(content: bytes) -> str:
    return hashlib.sha1(b"blob %d\0" % len(content) + content).hexdigest()


@dataclass
class FakeBranch:
    commit: str
    files: Dict[str, bytes] = field(default_factory=dict)


@dataclass
class FakeRepo:
    owner: str
    name: str
    default_branch: str = "main"
    branches: Dict[str, FakeBranch] = field(default_factory=dict)


class FakeGitHub:
    """Just enough of the GitHub REST API for RepoPush."""

    def __init__(self, account: str = ACCOUNT):
        self.account = account
        self.repos: Dict[Tuple[str, str], FakeRepo] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_writes: Set[str] = set()
        self.fail_reads: Set[str] = set()
        self.reject_refs: Set[str] = set()
        self.inline_limit: Optional[int] = None
        self.blob_outage = False
        self.pulls: List[dict] = []
        self.deny_delete = False
        self.delete_lag = 0
        self._ghosts: Dict[Tuple[str, str], int] = {}
        self._commits = itertools.count(1)

    # ---- Seeding helpers ---------------------------------------------------

    def _next_commit(self) -> str:
        return f"{next(self._commits):040x}"

    def add_repo(
        self,
        name: str,
        owner: Optional[str] = None,
        files: Optional[Dict[str, bytes]] = None,
        default_branch: str = "main",
    ) -> FakeRepo:
        repo = FakeRepo(owner or self.account, name, default_branch)
        repo.branches[default_branch] = FakeBranch(self._next_commit(), dict(files or {}))
        self.repos[(repo.owner, name)] = repo
        return repo

    def add_branch(self, repo: FakeRepo, name: str, files: Dict[str, bytes]) -> None:
        repo.branches[name] = FakeBranch(self._next_commit(), dict(files))

    def file(self, name: str, branch: str, path: str, owner: Optional[str] = None) -> bytes:
        return self.repos[(owner or self.account, name)].branches[branch].files[path]

    def count(self, method: str, prefix: str = "") -> int:
        return sum(1 for m, p in self.calls if m == method and p.startswith(prefix))

    def counts(self) -> Counter:
        return Counter(self.calls)

    # ---- Transport ---------------------------------------------------------

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))
        parts = path.strip('/').split('/')
        body = json.loads(request.content) if request.content else {}

        if parts[:2] == ['user', 'repos'] and request.method == 'GET':
            return self._list_repos(request.url.params.get('sort'))
        if parts[:2] == ['user', 'repos'] and request.method == 'POST':
            return self._create_repo(body)
        if parts[0] != 'repos' or len(parts) < 3:
            return self._json(404, {'message': 'Not Found'})

        key = (parts[1], parts[2])
        rest = parts[3:]

        if not rest:
            return self._repo_endpoint(request.method, key)

        repo = self.repos.get(key)
        if repo is None:
            return self._json(404, {'message': 'Not Found'})

        if rest[0] == 'branches':
            if len(rest) == 1:
                return self._json(200, [
                    {'name': name, 'commit': {'sha': branch.commit}}
                    for name, branch in repo.branches.items()
                ])
            name = '/'.join(rest[1:])
            if name not in repo.branches:
                return self._json(404, {'message': 'Branch not found'})
            return self._json(200, {'name': name, 'commit': {'sha': repo.branches[name].commit}})

        if rest[:2] == ['git', 'refs']:
            if request.method == 'POST':
                return self._create_ref(repo, body)
            name = '/'.join(rest[3:])
            if name not in repo.branches:
                return self._json(404, {'message': 'Not Found'})
            return self._json(200, {
                'ref': f'refs/heads/{name}',
                'object': {'sha': repo.branches[name].commit, 'type': 'commit'},
            })

        if rest[:2] == ['git', 'blobs']:
            return self._get_blob(repo, rest[2] if len(rest) > 2 else '')

        if rest[:2] == ['git', 'trees']:
            name = '/'.join(rest[2:])
            if name not in repo.branches:
                return self._json(404, {'message': 'Not Found'})
            return self._json(200, {'tree': self._tree(repo.branches[name]), 'truncated': False})

        if rest[0] == 'pulls' and request.method == 'POST':
            return self._create_pull(repo, body)

        if rest[0] == 'contents':
            file_path = '/'.join(rest[1:])
            ref = request.url.params.get('ref') or body.get('branch') or repo.default_branch
            branch = repo.branches.get(ref)
            if branch is None:
                return self._json(404, {'message': f'No commit found for the ref {ref}'})
            if request.method == 'GET':
                return self._get_content(branch, file_path)
            if request.method == 'PUT':
                return self._put_content(branch, file_path, body)
            if request.method == 'DELETE':
                return self._delete_content(branch, file_path, body)

        return self._json(404, {'message': 'Not Found'})

    # ---- Endpoints ---------------------------------------------------------

    @staticmethod
    def _json(status: int, payload=None) -> httpx.Response:
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)

    def _repo_json(self, repo: FakeRepo) -> dict:
        return {
            'name': repo.name,
            'full_name': f'{repo.owner}/{repo.name}',
            'owner': {'login': repo.owner},
            'default_branch': repo.default_branch,
            'html_url': f'https://github.com/{repo.owner}/{repo.name}',
            'private': False,
        }

    def _repo_endpoint(self, method: str, key: Tuple[str, str]) -> httpx.Response:
        if method == 'GET':
            if self._ghosts.get(key):
                self._ghosts[key] -= 1
                return self._json(200, {
                    'name': key[1], 'owner': {'login': key[0]}, 'default_branch': 'main',
                })
            repo = self.repos.get(key)
            if repo is None:
                return self._json(404, {'message': 'Not Found'})
            return self._json(200, self._repo_json(repo))

        if method == 'DELETE':
            if key not in self.repos:
                return self._json(404, {'message': 'Not Found'})
            if self.deny_delete:
                return self._json(403, {'message': 'Must have admin rights to Repository.'})
            del self.repos[key]
            if self.delete_lag:
                self._ghosts[key] = self.delete_lag
            return self._json(204)

        return self._json(405, {'message': 'Method Not Allowed'})

    def _create_repo(self, body: dict) -> httpx.Response:
        key = (self.account, body['name'])
        if key in self.repos or self._ghosts.get(key):
            return self._json(422, {
                'message': 'Repository creation failed.',
                'errors': [{'message': 'name already exists on this account'}],
            })
        files = {'README.md': f"# {body['name']}\n".encode()} if body.get('auto_init') else {}
        repo = self.add_repo(body['name'], files=files)
        return self._json(201, self._repo_json(repo))

    def _list_repos(self, sort: Optional[str]) -> httpx.Response:
        owned = [repo for repo in self.repos.values() if repo.owner == self.account]
        if sort == 'updated':
            # Commit ids are zero-padded counters, so the newest compares highest
            owned.sort(key=lambda r: max(b.commit for b in r.branches.values()), reverse=True)
        return self._json(200, [self._repo_json(repo) for repo in owned])

    def _create_pull(self, repo: FakeRepo, body: dict) -> httpx.Response:
        head, base = body.get('head'), body.get('base')
        if head not in repo.branches or base not in repo.branches:
            return self._json(422, {
                'message': 'Validation Failed',
                'errors': [{'resource': 'PullRequest', 'field': 'head', 'code': 'invalid'}],
            })
        if repo.branches[head].files == repo.branches[base].files:
            return self._json(422, {
                'message': 'Validation Failed',
                'errors': [{'resource': 'PullRequest', 'code': 'custom',
                            'message': f'No commits between {base} and {head}'}],
            })
        self.pulls.append(body)
        number = len(self.pulls)
        return self._json(201, {
            'number': number,
            'html_url': f'https://github.com/{repo.owner}/{repo.name}/pull/{number}',
            'title': body.get('title'),
        })

    def _create_ref(self, repo: FakeRepo, body: dict) -> httpx.Response:
        name = body['ref'][len('refs/heads/'):]
        if name in self.reject_refs:
            return self._json(422, {'message': 'Reference update failed'})
        if name in repo.branches:
            return self._json(422, {'message': 'Reference already exists'})
        source = next(
            (b for b in repo.branches.values() if b.commit == body['sha']), None
        )
        if source is None:
            return self._json(422, {'message': 'Object does not exist'})
        repo.branches[name] = FakeBranch(body['sha'], dict(source.files))
        return self._json(201, {'ref': body['ref'], 'object': {'sha': body['sha']}})

    @staticmethod
    def _tree(branch: FakeBranch) -> List[dict]:
        entries, dirs = [], set()
        for file_path, content in sorted(branch.files.items()):
            parts = file_path.split('/')
            for i in range(1, len(parts)):
                dirs.add('/'.join(parts[:i]))
            entries.append({
                'path': file_path, 'type': 'blob', 'sha': blob_sha(content), 'size': len(content),
            })
        entries.extend({'path': d, 'type': 'tree', 'sha': '0' * 40} for d in sorted(dirs))
        return entries

    def _get_content(self, branch: FakeBranch, file_path: str) -> httpx.Response:
        if file_path in self.fail_reads:
            return self._json(500, {'message': 'Server Error'})
        if file_path not in branch.files:
            return self._list_directory(branch, file_path)
        content = branch.files[file_path]
        if self.inline_limit is not None and len(content) > self.inline_limit:
            # Large files are listed without inline content
            return self._json(200, {
                'type': 'file', 'path': file_path, 'sha': blob_sha(content),
                'size': len(content), 'encoding': 'none', 'content': '',
            })
        return self._json(200, {
            'type': 'file', 'path': file_path, 'sha': blob_sha(content),
            'size': len(content), 'encoding': 'base64', 'content': self._wrapped(content),
        })

    def _list_directory(self, branch: FakeBranch, directory: str) -> httpx.Response:
        prefix = f'{directory}/' if directory else ''
        entries: Dict[str, dict] = {}
        for file_path, content in sorted(branch.files.items()):
            if not file_path.startswith(prefix):
                continue
            name, _, below = file_path[len(prefix):].partition('/')
            if below:
                entries.setdefault(name, {
                    'name': name, 'path': prefix + name, 'type': 'dir', 'sha': '0' * 40, 'size': 0,
                })
            else:
                entries[name] = {
                    'name': name, 'path': file_path, 'type': 'file',
                    'sha': blob_sha(content), 'size': len(content),
                }
        if directory and not entries:
            return self._json(404, {'message': 'Not Found'})
        return self._json(200, [entries[name] for name in sorted(entries)])

    @staticmethod
    def _wrapped(content: bytes) -> str:
        # Mimic the 60-column wrapping of the contents API
        encoded = base64.b64encode(content).decode()
        return '\n'.join(encoded[i:i + 60] for i in range(0, len(encoded), 60))

    def _get_blob(self, repo: FakeRepo, sha: str) -> httpx.Response:
        if self.blob_outage:
            return self._json(500, {'message': 'Server Error'})
        for branch in repo.branches.values():
            for content in branch.files.values():
                if blob_sha(content) == sha:
                    return self._json(200, {
                        'sha': sha, 'size': len(content),
                        'encoding': 'base64', 'content': self._wrapped(content),
                    })
        return self._json(404, {'message': 'Not Found'})

    def _put_content(self, branch: FakeBranch, file_path: str, body: dict) -> httpx.Response:
        if file_path in self.fail_writes:
            return self._json(500, {'message': 'Server Error'})
        current = branch.files.get(file_path)
        supplied = body.get('sha')
        if current is not None and not supplied:
            return self._json(422, {'message': 'Invalid request.\n\n"sha" wasn\'t supplied.'})
        if current is not None and supplied != blob_sha(current):
            return self._json(409, {'message': f'{file_path} does not match {supplied}'})
        if current is None and supplied:
            return self._json(422, {'message': 'sha supplied for a new file'})

        content = base64.b64decode(body['content'])
        branch.files[file_path] = content
        branch.commit = self._next_commit()
        return self._json(200 if current is not None else 201, {
            'content': {'path': file_path, 'sha': blob_sha(content)},
            'commit': {'sha': branch.commit, 'message': body['message']},
        })

    def _delete_content(self, branch: FakeBranch, file_path: str, body: dict) -> httpx.Response:
        current = branch.files.get(file_path)
        if current is None:
            return self._json(404, {'message': 'Not Found'})
        if body.get('sha') != blob_sha(current):
            return self._json(409, {'message': f'{file_path} does not match'})
        del branch.files[file_path]
        branch.commit = self._next_commit()
        return self._json(200, {'commit': {'sha': branch.commit}})


# ---- Fixtures --------------------------------------------------------------

@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def config():
    return PushConfig(deletion_settle_attempts=3, deletion_settle_delay=0.001)


@pytest.fixture
def identity():
    return GitHubIdentity(access_token="ghp_test", account_name=ACCOUNT)


@pytest.fixture
def client(github, config, identity):
    return RepoPush(identity, config=config, transport=github.transport)


@pytest.fixture
def store(client):
    return client.store
