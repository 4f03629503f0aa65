"""
Resolution of the hub root directory.

The hub root is plain configuration: the CLI resolves it once and hands the
result to :class:`localhub.hub.HubDirectory`.
"""

import hashlib
import os
from pathlib import Path

from localhub.logging import get_logger

logger = get_logger("config")

DEFAULT_HUB_DIRNAME = ".local-git-hub"
HUB_PATH_ENV = "LOCAL_GIT_HUB_PATH"
CACHE_DIR = Path(".cache") / "local-git-hub"


def default_hub_path():
    """Returns ``~/.local-git-hub`` for the current user."""
    return Path.home() / DEFAULT_HUB_DIRNAME


def resolve_hub_path(explicit=None):
    """Work out which directory to use as the hub root.

    Args:
        explicit (Optional[str | os.PathLike]): Path given on the command line. Wins over
            everything else.

    Returns:
        pathlib.Path: Absolute, user-expanded hub root. The directory is not created.
    """
    if explicit is not None:
        source = "argument"
        raw = explicit
    elif os.environ.get(HUB_PATH_ENV):
        source = HUB_PATH_ENV
        raw = os.environ[HUB_PATH_ENV]
    else:
        source = "default"
        raw = default_hub_path()

    path = Path(raw).expanduser().absolute()
    logger.debug(f"Hub path resolved from {source}: {path}")
    return path


def default_cache_path(hub_path):
    """Location of the on-disk commit count cache for a hub.

    The file lives under ``~/.cache/local-git-hub``, outside the hub, and is
    named after a digest of the absolute hub path so each hub gets its own.
    """
    hub_key = hashlib.sha1(os.fspath(Path(hub_path).absolute()).encode("utf-8")).hexdigest()[:16]
    return Path.home() / CACHE_DIR / f"{hub_key}.gz"
