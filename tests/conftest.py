"""Fixtures for tests.

This file provides shared fixtures for building descriptors, reporters, cache stores and ``.tar.gz`` archives shaped
like the snapshots the supported hosts serve, plus helpers that keep git and HTTP offline.
"""

from __future__ import annotations

import io
import tarfile
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest

from gitsnap.cache import CacheStore
from gitsnap.query_parser import parse_specifier
from gitsnap.reporting import Reporter
from gitsnap.schemas import RefEntry, RefType

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

    from gitsnap.schemas import RepoDescriptor

BuildArchiveFunc = Callable[[Path, Dict[str, str]], Path]

DEMO_SPECIFIER = "github.com/user/repo"
DEMO_URL = "https://github.com/user/repo"
DEMO_COMMIT = "deadbeefdeadbeefdeadbeefdeadbeefdeadbeef"
OTHER_COMMIT = "cafebabecafebabecafebabecafebabecafebabe"


def build_ls_remote_refs(head: str = DEMO_COMMIT) -> list[RefEntry]:
    """Return a listing with ``HEAD``, a ``main`` branch and a ``v1.0`` tag."""
    return [
        RefEntry(type=RefType.HEAD, hash=head),
        RefEntry(type=RefType.BRANCH, name="main", hash=head),
        RefEntry(type=RefType.TAG, name="v1.0", hash=OTHER_COMMIT),
    ]


@pytest.fixture
def descriptor() -> RepoDescriptor:
    """Provide the descriptor of ``github.com/user/repo`` at ``HEAD``."""
    return parse_specifier(DEMO_SPECIFIER)


@pytest.fixture
def reporter() -> Reporter:
    """Provide a verbose ``Reporter`` without a handler; inspect ``reporter.events`` in assertions."""
    return Reporter(verbose=True)


@pytest.fixture
def cache_store(tmp_path: Path) -> CacheStore:
    """Provide a ``CacheStore`` rooted in a temporary directory."""
    return CacheStore(tmp_path / "cache")


@pytest.fixture
def build_archive() -> BuildArchiveFunc:
    """Provide a helper that writes a ``.tar.gz`` with the given ``{member name: content}`` files.

    Returns
    -------
    BuildArchiveFunc
        A callable that accepts the archive path and the files mapping and returns the archive path.

    """

    def _build_archive(path: Path, files: dict[str, str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(path, "w:gz") as tar:
            for name, content in files.items():
                data = content.encode()
                info = tarfile.TarInfo(name)
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
        return path

    return _build_archive


@pytest.fixture
def stub_remote_refs(mocker: MockerFixture) -> AsyncMock:
    """Patch ``fetch_remote_refs`` so ref resolution stays offline.

    The default listing comes from ``build_ls_remote_refs``; tests may replace ``return_value`` or set a
    ``side_effect``.
    """
    return mocker.patch(
        "gitsnap.ref_resolver.fetch_remote_refs",
        new_callable=AsyncMock,
        return_value=build_ls_remote_refs(),
    )


@pytest.fixture
def gitpython_mocks(mocker: MockerFixture) -> dict[str, MagicMock]:
    """Patch ``git.Git`` and ``git.Repo`` so no git process is ever spawned.

    ``ls_remote`` answers with a listing that has ``HEAD``, ``main`` and an annotated ``v1.0`` tag.
    """
    mock_git_cmd = MagicMock()
    mock_git_cmd.version.return_value = "git version 2.43.0"
    mock_git_cmd.config.return_value = "true"
    mock_git_cmd.ls_remote.return_value = (
        f"{DEMO_COMMIT}\tHEAD\n"
        f"{DEMO_COMMIT}\trefs/heads/main\n"
        f"{OTHER_COMMIT}\trefs/tags/v1.0\n"
        f"{DEMO_COMMIT}\trefs/tags/v1.0^{{}}\n"
    )

    mock_repo = MagicMock()
    mock_repo.head.commit.hexsha = DEMO_COMMIT
    mock_clone_from = MagicMock(return_value=mock_repo)

    mocker.patch("gitsnap.utils.git_utils.git.Git", return_value=mock_git_cmd)
    mocker.patch("gitsnap.utils.git_utils.git.Repo", return_value=mock_repo)
    mocker.patch("gitsnap.utils.git_utils.git.Repo.clone_from", mock_clone_from)

    return {
        "git_cmd": mock_git_cmd,
        "repo": mock_repo,
        "clone_from": mock_clone_from,
    }
