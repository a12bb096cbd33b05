"""Tests for the ``cloning`` module.

These tests drive ``clone_repo`` end to end with the network and git patched out: archive reuse, downloads, the
downgrade from archives to ``git clone``, SSH to HTTPS fallback in VCS mode and the destination emptiness check.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable
from unittest.mock import AsyncMock

import pytest

from gitsnap.cloning import check_destination, clone_repo
from gitsnap.query_parser import parse_specifier
from gitsnap.schemas import CloneMode, CloneOptions, EventCode, EventLevel, RefEntry, RefType
from gitsnap.utils.exceptions import CouldNotFetchError, DestinationNotEmptyError, GitCloneError
from tests.conftest import DEMO_COMMIT, OTHER_COMMIT, build_ls_remote_refs

if TYPE_CHECKING:
    from pytest_mock import MockerFixture

    from gitsnap.cache import CacheStore
    from gitsnap.reporting import Reporter
    from tests.conftest import BuildArchiveFunc

SNAPSHOT_FILES = {
    "widget-abc/README.md": "# widget\n",
    "widget-abc/src/main.py": "print('widget')\n",
    "widget-abc/src/lib/util.py": "X = 1\n",
}


@pytest.fixture
def fake_download(mocker: MockerFixture, build_archive: BuildArchiveFunc) -> AsyncMock:
    """Patch ``download_archive`` to write ``SNAPSHOT_FILES`` as the downloaded archive."""

    async def _download(url: str, target: Path, *, proxy: str | None = None) -> None:
        build_archive(target, SNAPSHOT_FILES)

    return mocker.patch("gitsnap.cloning.download_archive", new_callable=AsyncMock, side_effect=_download)


@pytest.fixture
def fake_git_clone(mocker: MockerFixture) -> AsyncMock:
    """Patch ``clone_into`` to lay out a checkout (with a ``.git`` directory) instead of running git."""

    async def _clone(url: str, local_path: Path, *, commit: str | None = None, ref: str | None = None) -> None:
        (local_path / ".git").mkdir(parents=True)
        (local_path / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
        (local_path / "src").mkdir()
        (local_path / "src" / "main.py").write_text("print('from git')\n")
        (local_path / "README.md").write_text("# from git\n")

    mocker.patch("gitsnap.cloning.head_commit", return_value=None)
    return mocker.patch("gitsnap.cloning.clone_into", new_callable=AsyncMock, side_effect=_clone)


def _codes(reporter: Reporter, level: EventLevel | None = None) -> list[EventCode]:
    return [event.code for event in reporter.events if level is None or event.level == level]


@pytest.mark.asyncio
@pytest.mark.usefixtures("stub_remote_refs")
async def test_clone_repo_downloads_and_extracts(
    tmp_path: Path,
    cache_store: CacheStore,
    reporter: Reporter,
    fake_download: AsyncMock,
) -> None:
    """Given an empty destination and an empty cache:
    When ``clone_repo`` is called,
    Then the archive is downloaded into the cache and extracted without its top-level directory.
    """
    descriptor = parse_specifier("github.com/acme/widget")
    destination = tmp_path / "out"

    result = await clone_repo(descriptor, destination, options=CloneOptions(), cache=cache_store, reporter=reporter)

    archive = cache_store.archive_path(descriptor, DEMO_COMMIT)
    fake_download.assert_awaited_once_with(
        f"https://github.com/acme/widget/archive/{DEMO_COMMIT}.tar.gz",
        archive,
        proxy=None,
    )
    assert (destination / "README.md").read_text() == "# widget\n"
    assert (destination / "src" / "lib" / "util.py").exists()
    assert result.resolved_hash == DEMO_COMMIT
    assert cache_store.load_record(descriptor).ref_to_hash == {"HEAD": DEMO_COMMIT}
    assert "HEAD" in cache_store.load_record(descriptor).access_log
    assert reporter.events[-1].level == EventLevel.SUCCESS
    assert reporter.events[-1].message == f"cloned acme/widget#HEAD to {destination}"


@pytest.mark.asyncio
async def test_clone_repo_subdir_and_tag(
    tmp_path: Path,
    cache_store: CacheStore,
    reporter: Reporter,
    stub_remote_refs: AsyncMock,
    fake_download: AsyncMock,
) -> None:
    """A specifier with a subdirectory and a tag downloads the tag's archive and extracts only the subtree."""
    stub_remote_refs.return_value = [
        *build_ls_remote_refs(),
        RefEntry(type=RefType.TAG, name="v2", hash=OTHER_COMMIT),
    ]
    descriptor = parse_specifier("github.com/acme/widget/src#v2")
    destination = tmp_path / "out"

    await clone_repo(descriptor, destination, options=CloneOptions(), cache=cache_store, reporter=reporter)

    url = fake_download.await_args.args[0]
    assert url == f"https://github.com/acme/widget/archive/{OTHER_COMMIT}.tar.gz"
    assert sorted(path.relative_to(destination).as_posix() for path in destination.rglob("*")) == [
        "lib",
        "lib/util.py",
        "main.py",
    ]


@pytest.mark.asyncio
@pytest.mark.usefixtures("stub_remote_refs")
async def test_clone_repo_reuses_cached_archive(
    tmp_path: Path,
    cache_store: CacheStore,
    reporter: Reporter,
    fake_download: AsyncMock,
    build_archive: BuildArchiveFunc,
) -> None:
    """An archive already in the cache is extracted without downloading it again."""
    descriptor = parse_specifier("github.com/acme/widget")
    build_archive(cache_store.archive_path(descriptor, DEMO_COMMIT), SNAPSHOT_FILES)

    await clone_repo(descriptor, tmp_path / "out", options=CloneOptions(), cache=cache_store, reporter=reporter)

    fake_download.assert_not_awaited()
    assert EventCode.FILE_EXISTS in _codes(reporter)
    assert (tmp_path / "out" / "README.md").exists()


@pytest.mark.asyncio
@pytest.mark.usefixtures("stub_remote_refs")
async def test_clone_repo_downgrades_to_git(
    tmp_path: Path,
    cache_store: CacheStore,
    reporter: Reporter,
    mocker: MockerFixture,
    fake_git_clone: AsyncMock,
) -> None:
    """Given an archive download that fails:
    When ``clone_repo`` is called,
    Then a downgrade warning is emitted and the tree comes from ``git clone`` over HTTPS, without ``.git``.
    """
    mocker.patch(
        "gitsnap.cloning.download_archive",
        new_callable=AsyncMock,
        side_effect=CouldNotFetchError("could not download"),
    )
    descriptor = parse_specifier("github.com/acme/widget")
    destination = tmp_path / "out"

    await clone_repo(
        descriptor,
        destination,
        options=CloneOptions(),
        cache=cache_store,
        reporter=reporter,
        tmp_root=tmp_path / "tmp",
    )

    fake_git_clone.assert_awaited_once()
    assert fake_git_clone.await_args.args[0] == "https://github.com/acme/widget.git"
    assert fake_git_clone.await_args.kwargs["commit"] == DEMO_COMMIT
    assert EventCode.DOWNGRADE in _codes(reporter, EventLevel.WARN)
    assert (destination / "README.md").read_text() == "# from git\n"
    assert not (destination / ".git").exists()
    assert list((tmp_path / "tmp").iterdir()) == []


@pytest.mark.asyncio
@pytest.mark.usefixtures("stub_remote_refs")
async def test_clone_repo_corrupt_archive_is_discarded(
    tmp_path: Path,
    cache_store: CacheStore,
    reporter: Reporter,
    fake_git_clone: AsyncMock,
) -> None:
    """A cached archive that cannot be extracted is deleted and the clone falls back to git."""
    descriptor = parse_specifier("github.com/acme/widget")
    archive = cache_store.archive_path(descriptor, DEMO_COMMIT)
    archive.parent.mkdir(parents=True)
    archive.write_bytes(b"corrupt")

    await clone_repo(
        descriptor,
        tmp_path / "out",
        options=CloneOptions(),
        cache=cache_store,
        reporter=reporter,
        tmp_root=tmp_path / "tmp",
    )

    assert not archive.exists()
    fake_git_clone.assert_awaited_once()
    record = cache_store.load_record(descriptor)
    assert record.ref_to_hash == {}
    assert record.access_log == {}


@pytest.mark.asyncio
@pytest.mark.usefixtures("stub_remote_refs")
async def test_clone_repo_vcs_mode_falls_back_to_https(
    tmp_path: Path,
    cache_store: CacheStore,
    reporter: Reporter,
    mocker: MockerFixture,
) -> None:
    """VCS mode tries SSH first and retries over HTTPS, never touching the archive cache."""
    calls: list[str] = []

    async def _clone(url: str, local_path: Path, *, commit: str | None = None, ref: str | None = None) -> None:
        calls.append(url)
        if url.startswith("git@"):
            msg = "permission denied (publickey)"
            raise GitCloneError(msg, url=url)
        local_path.mkdir(parents=True)
        (local_path / "README.md").write_text("ok\n")

    mocker.patch("gitsnap.cloning.clone_into", side_effect=_clone)
    mocker.patch("gitsnap.cloning.head_commit", return_value=OTHER_COMMIT)
    download = mocker.patch("gitsnap.cloning.download_archive", new_callable=AsyncMock)
    descriptor = parse_specifier("github.com/acme/widget")

    result = await clone_repo(
        descriptor,
        tmp_path / "out",
        options=CloneOptions(mode=CloneMode.VCS),
        cache=cache_store,
        reporter=reporter,
        tmp_root=tmp_path / "tmp",
    )

    assert calls == ["git@github.com:acme/widget", "https://github.com/acme/widget.git"]
    assert result.resolved_hash == OTHER_COMMIT
    download.assert_not_awaited()
    assert not cache_store.repo_dir(descriptor).exists()
    assert (tmp_path / "out" / "README.md").exists()


@pytest.mark.asyncio
async def test_clone_repo_refuses_non_empty_destination(
    tmp_path: Path,
    cache_store: CacheStore,
    reporter: Reporter,
    stub_remote_refs: AsyncMock,
) -> None:
    """A non-empty destination without ``force`` aborts before anything is fetched."""
    destination = tmp_path / "out"
    destination.mkdir()
    (destination / "keep.txt").write_text("mine")

    with pytest.raises(DestinationNotEmptyError, match="Use --force to override"):
        await clone_repo(
            parse_specifier("acme/widget"),
            destination,
            options=CloneOptions(),
            cache=cache_store,
            reporter=reporter,
        )

    stub_remote_refs.assert_not_awaited()
    assert (destination / "keep.txt").read_text() == "mine"


@pytest.mark.asyncio
@pytest.mark.usefixtures("stub_remote_refs", "fake_download")
async def test_clone_repo_force_overlays_existing_files(
    tmp_path: Path,
    cache_store: CacheStore,
    reporter: Reporter,
) -> None:
    """With ``force`` the snapshot is written over the existing contents."""
    destination = tmp_path / "out"
    destination.mkdir()
    (destination / "keep.txt").write_text("mine")
    (destination / "README.md").write_text("old")

    await clone_repo(
        parse_specifier("github.com/acme/widget"),
        destination,
        options=CloneOptions(force=True),
        cache=cache_store,
        reporter=reporter,
    )

    assert (destination / "keep.txt").read_text() == "mine"
    assert (destination / "README.md").read_text() == "# widget\n"
    assert EventCode.DEST_NOT_EMPTY in _codes(reporter)


@pytest.mark.parametrize(
    "prepare",
    [
        pytest.param(lambda path: None, id="missing"),
        pytest.param(lambda path: path.mkdir(), id="empty"),
    ],
)
def test_check_destination_accepts_missing_or_empty(
    tmp_path: Path,
    reporter: Reporter,
    prepare: Callable[[Path], None],
) -> None:
    """Missing and empty destinations pass the check."""
    destination = tmp_path / "out"
    prepare(destination)

    check_destination(destination, force=False, reporter=reporter)

    assert _codes(reporter) == [EventCode.DEST_IS_EMPTY]


def test_check_destination_rejects_regular_file(tmp_path: Path, reporter: Reporter) -> None:
    """A destination that is a file is refused even with ``force``."""
    destination = tmp_path / "out"
    destination.write_text("not a directory")

    with pytest.raises(DestinationNotEmptyError, match="not a directory"):
        check_destination(destination, force=True, reporter=reporter)

    assert destination.read_text() == "not a directory"
