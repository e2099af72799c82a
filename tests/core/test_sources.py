import io
import zipfile

import pytest

from repopush.core.sources import (
    files_from_archive,
    files_from_directory,
    files_from_mapping,
    parse_repository_url,
)
from repopush.infrastructure.error_handler import InvalidInputError
from repopush.models import ContentEncoding, RepositoryRef


def test_files_from_mapping_keeps_text_and_bytes():
    files = files_from_mapping({"a.txt": "héllo", "b.bin": b"\x00\x01"})

    assert [(f.path, f.content) for f in files] == [
        ("a.txt", "héllo".encode("utf-8")),
        ("b.bin", b"\x00\x01"),
    ]
    assert files[0].content_encoding is ContentEncoding.UTF8


def test_files_from_mapping_rejects_bad_paths():
    with pytest.raises(InvalidInputError):
        files_from_mapping({"../escape.txt": "x"})


def test_files_from_directory_uses_relative_posix_paths(tmp_path):
    (tmp_path / "src" / "pkg").mkdir(parents=True)
    (tmp_path / "README.md").write_text("# demo")
    (tmp_path / "src" / "pkg" / "mod.py").write_bytes(b"print(1)\n")

    files = files_from_directory(tmp_path)

    assert {f.path: f.content for f in files} == {
        "README.md": b"# demo",
        "src/pkg/mod.py": b"print(1)\n",
    }


def test_files_from_directory_requires_a_directory(tmp_path):
    with pytest.raises(InvalidInputError):
        files_from_directory(tmp_path / "missing")


def test_files_from_directory_skips_vcs_and_os_metadata(tmp_path):
    (tmp_path / ".git" / "objects").mkdir(parents=True)
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (tmp_path / ".git" / "objects" / "ab").write_bytes(b"\x78\x01")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / ".DS_Store").write_bytes(b"\x00")
    (tmp_path / "docs" / "guide.md").write_text("guide")
    (tmp_path / ".gitignore").write_text("*.pyc\n")

    files = files_from_directory(tmp_path)

    assert [f.path for f in files] == [".gitignore", "docs/guide.md"]


def test_files_from_directory_is_sorted(tmp_path):
    for name in ("b.txt", "a.txt", "c/d.txt"):
        (tmp_path / name).parent.mkdir(exist_ok=True)
        (tmp_path / name).write_text(name)

    assert [f.path for f in files_from_directory(tmp_path)] == ["a.txt", "b.txt", "c/d.txt"]


def test_files_from_archive_skips_directories():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("project/", b"")
        archive.writestr("project/main.py", b"x = 1\n")
        archive.writestr("project/logo.png", b"\x89PNG\x00")

    files = files_from_archive(buffer.getvalue())

    assert {f.path: f.content for f in files} == {
        "project/main.py": b"x = 1\n",
        "project/logo.png": b"\x89PNG\x00",
    }


def test_files_from_archive_rejects_garbage():
    with pytest.raises(InvalidInputError, match="valid ZIP"):
        files_from_archive(b"definitely not a zip")


def test_files_from_archive_normalises_backslashes():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("project\\src\\main.py", b"x = 1\n")

    files = files_from_archive(buffer.getvalue())

    assert [f.path for f in files] == ["project/src/main.py"]


def test_files_from_archive_skips_resource_forks_and_vcs():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("project/main.py", b"x = 1\n")
        archive.writestr("__MACOSX/project/._main.py", b"\x00\x05")
        archive.writestr("project/.git/config", b"[core]\n")
        archive.writestr("project/.DS_Store", b"\x00")

    files = files_from_archive(buffer.getvalue())

    assert [f.path for f in files] == ["project/main.py"]


def test_files_from_archive_rejects_escaping_members():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("../outside.txt", b"x")

    with pytest.raises(InvalidInputError):
        files_from_archive(buffer.getvalue())


@pytest.mark.parametrize("url", [
    "https://github.com/octocat/hello-world",
    "https://github.com/octocat/hello-world.git",
    "https://github.com/octocat/hello-world/tree/main/docs",
    "git@github.com:octocat/hello-world.git",
    "  github.com/octocat/hello-world  ",
])
def test_parse_repository_url(url):
    assert parse_repository_url(url) == RepositoryRef("octocat", "hello-world")


@pytest.mark.parametrize("url", ["", "https://gitlab.com/a/b", "https://github.com/onlyowner"])
def test_parse_repository_url_rejects(url):
    with pytest.raises(InvalidInputError):
        parse_repository_url(url)
