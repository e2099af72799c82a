"""
Command line interface for RepoPush.
"""

import asyncio
import functools
import sys
from pathlib import Path
from typing import List, Optional

import click

from ..core import files_from_archive, files_from_directory
from ..infrastructure.error_handler import RepoPushError, describe_error
from ..models import FileEntry, GitHubIdentity, ImportMode, PushRequest, SyncRequest
from .api import RepoPush


def _run(operation: str):
    """Run an async command body and render RepoPush errors."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return asyncio.run(func(*args, **kwargs))
            except RepoPushError as e:
                title, description = describe_error(e, operation)
                click.echo(f"Error: {title}. {description}", err=True)
                click.echo(f"  {e}", err=True)
                sys.exit(1)
        return wrapper

    return decorator


def _client(ctx: click.Context) -> RepoPush:
    identity = GitHubIdentity(ctx.obj['token'], ctx.obj['user'])
    return RepoPush(identity, verbose=ctx.obj['verbose'])


@click.group()
@click.option('--token', envvar='GITHUB_TOKEN', required=True,
              help='GitHub access token (or set GITHUB_TOKEN).')
@click.option('--user', envvar='GITHUB_USER', required=True,
              help='GitHub account that owns the repositories (or set GITHUB_USER).')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging.')
@click.version_option(package_name='repopush')
@click.pass_context
def cli(ctx: click.Context, token: str, user: str, verbose: bool) -> None:
    """Push folders, archives and repositories to GitHub."""

    ctx.ensure_object(dict)
    ctx.obj.update(token=token, user=user, verbose=verbose)


@cli.command()
@click.argument('repository')
@click.option('--dir', 'directory', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Local folder to push.')
@click.option('--zip', 'archive', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='ZIP archive to push.')
@click.option('--url', 'source_url', help='GitHub repository URL to copy.')
@click.option('--source-branch', help='Branch of the source repository (default: main, then master).')
@click.option('--branch', '-b', help='Target branch (default: repository default).')
@click.option('--mode', type=click.Choice([m.value for m in ImportMode]), default=ImportMode.ADD.value,
              show_default=True, help='add keeps the repository, overwrite recreates it.')
@click.pass_context
@_run('push')
async def push(
    ctx: click.Context,
    repository: str,
    directory: Optional[Path],
    archive: Optional[Path],
    source_url: Optional[str],
    source_branch: Optional[str],
    branch: Optional[str],
    mode: str,
) -> None:
    """Create REPOSITORY if needed and push content into it."""

    if sum(bool(source) for source in (directory, archive, source_url)) > 1:
        raise click.UsageError('Use only one of --dir, --zip and --url')

    files: List[FileEntry] = []
    if directory:
        files = files_from_directory(directory)
    elif archive:
        files = files_from_archive(archive.read_bytes())

    request = PushRequest(
        repository_name=repository,
        files=files,
        source_url=source_url,
        source_branch=source_branch,
        import_mode=ImportMode(mode),
        target_branch=branch,
    )

    async with _client(ctx) as client:
        result = await client.create_and_push(request)

    summary = result.transfer.summary
    click.echo(f"{result.repository_name}: {result.repository_url}")
    click.echo(f"{summary.successful}/{summary.total} files pushed")
    for path, detail in result.transfer.failed_paths.items():
        click.echo(f"  failed: {path}: {detail}", err=True)
    if summary.failed:
        ctx.exit(2)


@cli.command()
@click.argument('source')
@click.argument('source_branch')
@click.argument('destination')
@click.argument('destination_branch')
@click.pass_context
@_run('sync')
async def sync(
    ctx: click.Context,
    source: str,
    source_branch: str,
    destination: str,
    destination_branch: str,
) -> None:
    """Merge the files of SOURCE:SOURCE_BRANCH into DESTINATION:DESTINATION_BRANCH."""

    async with _client(ctx) as client:
        result = await client.sync_contents(
            SyncRequest(source, source_branch, destination, destination_branch)
        )
    click.echo(f"{result.files_synced}/{result.total_files} files synced")


@cli.command()
@click.argument('repository')
@click.pass_context
@_run('fetch')
async def branches(ctx: click.Context, repository: str) -> None:
    """List the branches of REPOSITORY."""

    async with _client(ctx) as client:
        for branch in await client.list_branches(repository):
            click.echo(f"{branch.name}\t{branch.base_sha or ''}")


@cli.command()
@click.argument('name')
@click.pass_context
@_run('fetch')
async def check(ctx: click.Context, name: str) -> None:
    """Check whether repository NAME is still free."""

    async with _client(ctx) as client:
        availability = await client.check_name_availability(name)
    click.echo(availability.message)
    if not availability.available:
        ctx.exit(1)


@cli.command()
@click.pass_context
@_run('fetch')
async def repos(ctx: click.Context) -> None:
    """List your repositories, most recently updated first."""

    async with _client(ctx) as client:
        for info in await client.list_repositories():
            visibility = 'private' if info.private else 'public'
            click.echo(f"{info.ref.name}\t{visibility}\t{info.html_url or ''}")


@cli.command(name='ls')
@click.argument('repository')
@click.argument('path', default='')
@click.option('--ref', help='Branch, tag or commit to list (default: repository default).')
@click.pass_context
@_run('fetch')
async def list_contents(ctx: click.Context, repository: str, path: str, ref: Optional[str]) -> None:
    """List the directory PATH of REPOSITORY."""

    async with _client(ctx) as client:
        for entry in await client.list_contents(repository, path, ref):
            name = f"{entry.path}/" if entry.is_dir else entry.path
            click.echo(f"{entry.type}\t{name}")


@cli.command()
@click.argument('repository')
@click.argument('head')
@click.argument('base')
@click.option('--title', '-t', required=True, help='Pull request title.')
@click.option('--body', default='', help='Pull request description.')
@click.pass_context
@_run('pull_request')
async def pr(ctx: click.Context, repository: str, head: str, base: str, title: str, body: str) -> None:
    """Open a pull request merging HEAD into BASE in REPOSITORY."""

    async with _client(ctx) as client:
        pull_request = await client.create_pull_request(repository, title, head, base, body)
    click.echo(f"#{pull_request.number}: {pull_request.html_url}")


def main() -> None:
    cli(obj={})


__all__ = ["cli", "main"]
