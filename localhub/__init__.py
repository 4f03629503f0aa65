from importlib.metadata import PackageNotFoundError, version

from localhub.exceptions import (
    AlreadyExistsError,
    HubIOError,
    InvalidNameError,
    InvalidRepositoryError,
    LocalHubError,
    NotARepositoryError,
    NotFoundError,
    RedundantPushUrlError,
)
from localhub.hub import HubDirectory, RepositoryRecord
from localhub.remote import RemoteManager, RemoteRecord

try:
    __version__ = version("local-git-hub")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "HubDirectory",
    "RepositoryRecord",
    "RemoteManager",
    "RemoteRecord",
    "LocalHubError",
    "InvalidNameError",
    "AlreadyExistsError",
    "NotFoundError",
    "NotARepositoryError",
    "InvalidRepositoryError",
    "RedundantPushUrlError",
    "HubIOError",
]
