"""Configuration for the gitsnap package."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

CACHE_BASE_PATH = Path(os.getenv("GITSNAP_CACHE_DIR", str(Path.home() / ".gitsnap"))).expanduser()
TMP_BASE_PATH = Path(os.getenv("GITSNAP_TMP_DIR", str(Path(tempfile.gettempdir()) / "gitsnap"))).expanduser()

DEFAULT_HOST: str = os.getenv("GITSNAP_DEFAULT_HOST", "github.com").lower()
DEFAULT_PROTOCOL: str = "https"

KNOWN_GIT_HOSTS: list[str] = [
    "github.com",
    "gitlab.com",
    "bitbucket.org",
    "git.sr.ht",
]

DIRECTIVES_FILE_NAME = ".gitsnap.json"
MAP_FILE_NAME = "map.json"
ACCESS_FILE_NAME = "access.json"

MIN_HASH_PREFIX_LENGTH = 8
DEFAULT_TIMEOUT = int(os.getenv("GITSNAP_TIMEOUT", "60"))  # seconds

LOG_LEVEL: str = os.getenv("GITSNAP_LOG_LEVEL", "WARNING").upper()


def get_proxy() -> str | None:
    """Return the HTTPS proxy configured in the environment, if any."""
    return os.getenv("https_proxy") or os.getenv("HTTPS_PROXY") or None
