"""
.. module:: remote
   :platform: Unix, Windows
   :synopsis: Point the remotes of a working repository at hub repositories


"""

import os
from dataclasses import dataclass

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from localhub.exceptions import (
    AlreadyExistsError,
    HubIOError,
    NotARepositoryError,
    NotFoundError,
    RedundantPushUrlError,
)
from localhub.logging import get_logger

logger = get_logger("remote")

PUSH_SUFFIX = " (push)"


@dataclass
class RemoteRecord:
    """One remote of a working repository.

    Attributes:
        name (str): Remote name
        url (Optional[str]): Primary (fetch) URL
        push_url (Optional[str]): Secondary push URL, None when not configured
    """

    name: str
    url: str | None
    push_url: str | None = None


def _section(remote_name):
    return f'remote "{remote_name}"'


def _option(reader, section, option):
    """Raw string value of ``option``, or None if it is not set."""
    if reader.has_section(section) and reader.has_option(section, option):
        return reader.get(section, option)
    return None


class RemoteManager:
    """Edits the remote configuration of one working repository.

    Args:
        working_dir (Optional[str | os.PathLike]): Path of the repository:
            - If None: the repository containing the current directory is used,
              searching parent directories
            - Otherwise: the path must be the top of a git repository

    The repository is opened afresh by every call and closed before it returns.

    Examples:
        >>> manager = RemoteManager('/path/to/project')
        >>> manager.add_remote('local-hub', '/home/me/.local-git-hub/project.git')
        >>> manager.list_remotes()
        [('local-hub', '/home/me/.local-git-hub/project.git')]
    """

    def __init__(self, working_dir=None):
        self.working_dir = os.fspath(working_dir) if working_dir is not None else None

    def __repr__(self):
        return f"<RemoteManager {self.working_dir or os.getcwd()}>"

    def _open(self):
        try:
            if self.working_dir is None:
                return Repo(os.getcwd(), search_parent_directories=True)
            return Repo(self.working_dir)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            where = self.working_dir or os.getcwd()
            raise NotARepositoryError(
                f"Failed to open git repository at {where}",
                recovery_hint="Run this inside a git repository or pass --path",
            ) from e

    @staticmethod
    def _remote_names(repo):
        return [r.name for r in repo.remotes]

    def add_remote(self, remote_name, hub_repo_path):
        """Adds a remote whose only URL is ``hub_repo_path``.

        Args:
            remote_name (str): Name of the new remote, e.g. ``local-hub``
            hub_repo_path (str | os.PathLike): Path of the hub repository

        Raises:
            NotARepositoryError: If the working repository cannot be opened
            AlreadyExistsError: If a remote of that name is already configured
            HubIOError: If git refuses to add the remote
        """
        url = os.fspath(hub_repo_path)
        with self._open() as repo:
            if remote_name in self._remote_names(repo):
                raise AlreadyExistsError(f"Remote '{remote_name}' already exists")

            try:
                repo.create_remote(remote_name, url)
            except GitCommandError as e:
                raise HubIOError(f"Failed to add remote '{remote_name}' -> {url}: {e}") from e

        logger.info(f"Added remote {remote_name} -> {url}")

    def add_push_url(self, remote_name, hub_repo_path):
        """Sets ``hub_repo_path`` as the push URL of a remote, keeping its fetch URL.

        The remote does not have to exist: the ``pushurl`` setting is written
        either way. A remote holds a single push URL, so an earlier one is replaced.

        Args:
            remote_name (str): Remote to extend, usually ``origin``
            hub_repo_path (str | os.PathLike): Path of the hub repository

        Raises:
            NotARepositoryError: If the working repository cannot be opened
            RedundantPushUrlError: If ``hub_repo_path`` is already the URL or the push URL
                of the remote
            HubIOError: If the configuration cannot be written
        """
        url = os.fspath(hub_repo_path)
        section = _section(remote_name)
        with self._open() as repo:
            reader = repo.config_reader("repository")
            if url in (_option(reader, section, "pushurl"), _option(reader, section, "url")):
                raise RedundantPushUrlError(f"Push URL '{url}' already exists for remote '{remote_name}'")

            try:
                with repo.config_writer("repository") as writer:
                    writer.set_value(section, "pushurl", url)
            except OSError as e:
                raise HubIOError(f"Failed to add push URL '{url}' to remote '{remote_name}': {e}") from e

        logger.info(f"Set push URL of remote {remote_name} to {url}")

    def list_remotes(self):
        """Lists the configured remotes.

        Returns:
            List[Tuple[str, str]]: ``(name, url)`` pairs in configuration order. A remote
            with a push URL different from its URL is followed by
            ``("<name> (push)", push_url)``. Remotes without a URL are left out.

        Raises:
            NotARepositoryError: If the working repository cannot be opened
        """
        remotes = []
        with self._open() as repo:
            reader = repo.config_reader("repository")
            for name in self._remote_names(repo):
                section = _section(name)
                url = _option(reader, section, "url")
                if url is None:
                    continue
                remotes.append((name, url))

                push_url = _option(reader, section, "pushurl")
                if push_url is not None and push_url != url:
                    remotes.append((f"{name}{PUSH_SUFFIX}", push_url))

        return remotes

    def get_remote(self, remote_name):
        """Returns the :class:`RemoteRecord` for one remote.

        Raises:
            NotARepositoryError: If the working repository cannot be opened
            NotFoundError: If the remote is not configured
        """
        section = _section(remote_name)
        with self._open() as repo:
            reader = repo.config_reader("repository")
            if not reader.has_section(section):
                raise NotFoundError(f"Remote '{remote_name}' does not exist")
            return RemoteRecord(
                name=remote_name,
                url=_option(reader, section, "url"),
                push_url=_option(reader, section, "pushurl"),
            )

    def remove_remote(self, remote_name):
        """Deletes a remote with its URLs, refspecs and branch tracking settings.

        Raises:
            NotARepositoryError: If the working repository cannot be opened
            NotFoundError: If the remote is not configured
            HubIOError: If git fails to remove it
        """
        with self._open() as repo:
            if remote_name not in self._remote_names(repo):
                raise NotFoundError(f"Failed to delete remote '{remote_name}': remote does not exist")

            try:
                repo.delete_remote(repo.remote(remote_name))
            except GitCommandError as e:
                raise HubIOError(f"Failed to delete remote '{remote_name}': {e}") from e

        logger.info(f"Removed remote {remote_name}")
