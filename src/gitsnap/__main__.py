"""Command-line interface (CLI) for gitsnap."""

# pylint: disable=no-value-for-parameter
from __future__ import annotations

import asyncio
from typing import TypedDict

import click
from typing_extensions import Unpack

from gitsnap.config import CACHE_BASE_PATH
from gitsnap.entrypoint import clone_async
from gitsnap.schemas import CloneMode, Event, EventLevel
from gitsnap.utils.exceptions import GitsnapError
from gitsnap.utils.logging_config import configure_logging, get_logger

# Initialize logger for this module
logger = get_logger(__name__)

_EVENT_STYLES: dict[EventLevel, tuple[str, str]] = {
    EventLevel.INFO: ("cyan", ">"),
    EventLevel.WARN: ("yellow", "!"),
    EventLevel.ERROR: ("magenta", "!"),
    EventLevel.SUCCESS: ("green", "✔"),
}


class _CLIArgs(TypedDict):
    source: str
    destination: str
    force: bool
    cache: bool
    verbose: bool
    mode: str | None
    cache_dir: str


@click.command()
@click.argument("source", type=str)
@click.argument("destination", type=click.Path(file_okay=False), default=".")
@click.option("--force", "-f", is_flag=True, default=False, help="Allow cloning into a non-empty directory")
@click.option(
    "--cache",
    "-c",
    is_flag=True,
    default=False,
    help="Only use locally cached ref resolutions, never list the remote",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Print verbose progress information")
@click.option(
    "--mode",
    "-m",
    type=click.Choice([mode.value for mode in CloneMode]),
    default=None,
    help="Force archive download ('archive') or a git clone over SSH ('vcs')",
)
@click.option(
    "--cache-dir",
    envvar="GITSNAP_CACHE_DIR",
    default=str(CACHE_BASE_PATH),
    show_default=True,
    help="Directory holding downloaded archives and resolved refs",
)
def main(**cli_kwargs: Unpack[_CLIArgs]) -> None:
    """Copy a snapshot of SOURCE into DESTINATION, without its git history.

    \b
    Examples
    --------
        $ gitsnap user/repo
        $ gitsnap github.com/user/repo/sub/dir#v1.2 my-app
        $ gitsnap git@gitlab.com:user/repo#dev --force
        $ gitsnap https://bitbucket.org/user/repo#1a2b3c4d --mode vcs
    """
    asyncio.run(_async_main(**cli_kwargs))


async def _async_main(
    source: str,
    destination: str = ".",
    *,
    force: bool = False,
    cache: bool = False,
    verbose: bool = False,
    mode: str | None = None,
    cache_dir: str = str(CACHE_BASE_PATH),
) -> None:
    """Run the snapshot and render its events.

    Raises
    ------
    click.Abort
        Raised if the snapshot fails and the command must be aborted.

    """
    configure_logging()
    try:
        await clone_async(
            source,
            destination,
            force=force,
            cache=cache,
            verbose=verbose,
            mode=mode,
            cache_dir=cache_dir,
            on_event=_render_event,
        )
    except GitsnapError as exc:
        click.secho(f"! {exc.message}", fg="red", err=True)
        raise click.Abort from exc


def _render_event(event: Event) -> None:
    colour, marker = _EVENT_STYLES[event.level]
    click.secho(f"{marker} {event.message}", fg=colour, err=True)


if __name__ == "__main__":
    main()
