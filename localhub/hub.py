"""
.. module:: hub
   :platform: Unix, Windows
   :synopsis: A registry of bare git repositories kept under one hub directory


"""

import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime

import pandas as pd
from git import BadName, BadObject, GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from localhub.cache import multicache
from localhub.exceptions import (
    AlreadyExistsError,
    HubIOError,
    InvalidNameError,
    InvalidRepositoryError,
    NotFoundError,
)
from localhub.logging import get_logger

logger = get_logger("hub")

BARE_SUFFIX = ".git"
INVALID_NAME_CHARS = ("/", "\\", ":", "*", "?", '"', "<", ">", "|")
RESERVED_NAMES = (".", "..")
MAX_NAME_BYTES = 255
STAGING_PREFIX = ".creating-"
STAGED_REPO_NAME = "repo"
RECORD_COLUMNS = ["name", "path", "size", "modified", "commits"]


@dataclass
class RepositoryRecord:
    """Metadata derived for one bare repository in the hub.

    Attributes:
        name (str): Directory name, always ending in ``.git``
        path (str): Absolute path of the repository
        size (int): Bytes used on disk by every file below ``path``
        modified (datetime): Local modification time of the repository directory
        commits (Optional[int]): Commits reachable from HEAD, None for an empty repository
            or when the count was not requested
    """

    name: str
    path: str
    size: int
    modified: datetime
    commits: int | None = None


def normalize_name(name):
    """Appends the bare repository suffix unless ``name`` already carries it."""
    if name.endswith(BARE_SUFFIX):
        return name
    return name + BARE_SUFFIX


def validate_name(name):
    """Checks that ``name`` is usable as a new hub repository.

    Args:
        name (str): Name given by the user, with or without the ``.git`` suffix

    Raises:
        InvalidNameError: If the name is empty, contains a path or shell special character,
            is ``.`` or ``..``, or is longer than 255 bytes
    """
    if not name:
        raise InvalidNameError("Repository name cannot be empty")

    for c in INVALID_NAME_CHARS:
        if c in name:
            raise InvalidNameError(f"Repository name '{name}' cannot contain '{c}'")

    if name in RESERVED_NAMES:
        raise InvalidNameError("Repository name cannot be '.' or '..'")

    if len(name.encode("utf-8")) > MAX_NAME_BYTES:
        raise InvalidNameError(f"Repository name is too long (max {MAX_NAME_BYTES} characters)")


def is_bare_layout(path):
    """True if ``path`` has the HEAD file, objects directory and refs directory of a bare repository."""
    return (
        os.path.isfile(os.path.join(path, "HEAD"))
        and os.path.isdir(os.path.join(path, "objects"))
        and os.path.isdir(os.path.join(path, "refs"))
    )


def directory_size(path):
    """Total size in bytes of the files below ``path``. Symlinks are counted, not followed."""
    total = 0
    with os.scandir(path) as entries:
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                total += directory_size(entry.path)
            else:
                total += entry.stat(follow_symlinks=False).st_size
    return total


class HubDirectory:
    """A directory of bare git repositories used as a local backup hub.

    Every immediate subdirectory whose name ends in ``.git`` is treated as a
    hub repository. Names passed to the methods below may omit the suffix.

    Args:
        hub_path (str | os.PathLike): Root directory of the hub. It is created on the
            first :meth:`init` or :meth:`create_repo`, never on reads.
        cache_backend (Optional[object]): Cache backend instance from localhub.cache, used
            to remember commit counts

    Examples:
        >>> hub = HubDirectory('/tmp/hub')
        >>> hub.create_repo('proj')
        '/tmp/hub/proj.git'
        >>> hub.list_repos()
        ['proj.git']

    Note:
        Nothing here locks the hub. Two processes creating or deleting the same
        repository at the same time can race.
    """

    def __init__(self, hub_path, cache_backend=None):
        self.hub_path = os.path.abspath(os.fspath(hub_path))
        self.cache_backend = cache_backend
        logger.debug(f"HubDirectory instantiated at {self.hub_path}")

    @property
    def cache_namespace(self):
        return self.hub_path

    def __repr__(self):
        return f"<HubDirectory {self.hub_path}>"

    def _repo_dir(self, name):
        return os.path.join(self.hub_path, normalize_name(name))

    def _locate(self, name):
        """Returns the directory for ``name`` if it exists directly under the hub root, else None."""
        repo_dir = os.path.normpath(self._repo_dir(name))
        if os.path.dirname(repo_dir) != self.hub_path:
            return None
        if not os.path.lexists(repo_dir):
            return None
        return repo_dir

    def init(self):
        """Creates the hub directory if needed.

        Returns:
            str: The hub path

        Raises:
            HubIOError: If the directory cannot be created
        """
        try:
            os.makedirs(self.hub_path, exist_ok=True)
        except OSError as e:
            raise HubIOError(f"Failed to create hub directory {self.hub_path}: {e}") from e
        logger.debug(f"Hub directory ready at {self.hub_path}")
        return self.hub_path

    def create_repo(self, name):
        """Creates a new, empty bare repository in the hub.

        The repository is initialized in a hidden staging directory and then
        renamed into place, so ``<name>.git`` either appears complete or not at all.

        Args:
            name (str): Repository name, ``.git`` is appended when missing

        Returns:
            str: Absolute path of the new repository

        Raises:
            InvalidNameError: If the name fails validation
            AlreadyExistsError: If a repository of that name is already in the hub
            HubIOError: If the repository cannot be written
        """
        validate_name(name)
        repo_name = normalize_name(name)
        repo_dir = self._repo_dir(name)

        if os.path.lexists(repo_dir):
            raise AlreadyExistsError(f"Repository '{name}' already exists at {repo_dir}")

        self.init()
        staging_dir = None
        try:
            # short staging name so any valid repository name still fits
            staging_dir = tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=self.hub_path)
            staged_repo = os.path.join(staging_dir, STAGED_REPO_NAME)
            Repo.init(staged_repo, bare=True).close()
            os.rename(staged_repo, repo_dir)
        except (OSError, GitCommandError) as e:
            if staging_dir is not None:
                shutil.rmtree(staging_dir, ignore_errors=True)
            raise HubIOError(f"Failed to initialize bare repository '{repo_name}' at {repo_dir}: {e}") from e
        shutil.rmtree(staging_dir, ignore_errors=True)

        logger.info(f"Created bare repository {repo_name} at {repo_dir}")
        return repo_dir

    def list_repos(self):
        """Returns the names of all repositories in the hub.

        Returns:
            List[str]: Sorted directory names, each ending in ``.git``. Empty when the hub
            directory does not exist yet.

        Raises:
            HubIOError: If the hub directory exists but cannot be read
        """
        if not os.path.isdir(self.hub_path):
            logger.debug(f"Hub directory {self.hub_path} does not exist, no repositories")
            return []

        try:
            with os.scandir(self.hub_path) as entries:
                names = [e.name for e in entries if e.name.endswith(BARE_SUFFIX) and e.is_dir()]
        except OSError as e:
            raise HubIOError(f"Failed to read hub directory {self.hub_path}: {e}") from e

        return sorted(names)

    def list_repos_detailed(self, count_commits=True):
        """Returns a :class:`RepositoryRecord` for every repository in the hub.

        This is best effort: a repository whose metadata cannot be read is
        logged and left out instead of failing the whole listing.

        Args:
            count_commits (bool, optional): Walk each repository's history to fill in
                ``commits``. Defaults to True.

        Returns:
            List[RepositoryRecord]: Records sorted by name
        """
        records = []
        for repo_name in self.list_repos():
            try:
                records.append(self.repo_info(repo_name, count_commits=count_commits))
            except (NotFoundError, HubIOError) as e:
                logger.warning(f"Skipping repository {repo_name}: {e}")
        return records

    def search_repos(self, pattern):
        """Returns the repositories whose name contains ``pattern``, ignoring case.

        Args:
            pattern (str): Substring to look for

        Returns:
            List[str]: Matching names, in the order of :meth:`list_repos`
        """
        pattern_lower = pattern.lower()
        return [name for name in self.list_repos() if pattern_lower in name.lower()]

    def repo_path(self, name):
        """Returns the absolute path of a hub repository.

        Raises:
            NotFoundError: If the repository does not exist
        """
        repo_dir = self._locate(name)
        if repo_dir is None:
            raise NotFoundError(
                f"Repository '{name}' does not exist in {self.hub_path}",
                recovery_hint=f"Use 'local-git-hub create {name}' to create it first",
            )
        return repo_dir

    def repo_exists(self, name):
        """True if ``name`` exists directly under the hub root."""
        return self._locate(name) is not None

    def is_valid_repo(self, name):
        """True if ``name`` exists and has the layout of a bare repository."""
        repo_dir = self._locate(name)
        return repo_dir is not None and is_bare_layout(repo_dir)

    def repo_info(self, name, count_commits=True):
        """Derives the metadata of one repository.

        Args:
            name (str): Repository name, with or without ``.git``
            count_commits (bool, optional): Walk the history to count commits. Defaults to True.

        Returns:
            RepositoryRecord: Metadata for the repository

        Raises:
            NotFoundError: If the repository does not exist
            HubIOError: If size or modification time cannot be read
        """
        repo_dir = self.repo_path(name)
        try:
            size = directory_size(repo_dir)
            modified = datetime.fromtimestamp(os.stat(repo_dir).st_mtime)
        except OSError as e:
            raise HubIOError(f"Failed to read metadata of repository '{name}' at {repo_dir}: {e}") from e

        commits = self._commit_count_at(repo_dir) if count_commits else None
        return RepositoryRecord(
            name=os.path.basename(repo_dir),
            path=repo_dir,
            size=size,
            modified=modified,
            commits=commits,
        )

    def commit_count(self, name):
        """Counts the commits reachable from HEAD of a hub repository.

        This walks the full history and costs time proportional to it. With a
        cache backend, counts are remembered per head commit.

        Args:
            name (str): Repository name, with or without ``.git``

        Returns:
            Optional[int]: Number of commits, or None if HEAD does not resolve to a
            commit (for example a freshly created repository)

        Raises:
            NotFoundError: If the repository does not exist
        """
        return self._commit_count_at(self.repo_path(name))

    def _commit_count_at(self, repo_dir):
        head_sha = self._head_commit(repo_dir)
        if head_sha is None:
            return None

        try:
            return self._count_reachable(repo_dir, head_sha)
        except (GitCommandError, InvalidGitRepositoryError, NoSuchPathError, ValueError) as e:
            logger.debug(f"Could not walk history of {repo_dir}: {e}")
            return None

    @staticmethod
    def _head_commit(repo_dir):
        """Returns the sha HEAD resolves to, or None if it is unborn or not a commit."""
        try:
            with Repo(repo_dir) as repo:
                head = repo.rev_parse("HEAD")
        except (InvalidGitRepositoryError, NoSuchPathError, BadName, BadObject, GitCommandError, ValueError) as e:
            logger.debug(f"HEAD of {repo_dir} does not resolve: {e}")
            return None

        if head.type != "commit":
            logger.debug(f"HEAD of {repo_dir} points at a {head.type}, not a commit")
            return None
        return head.hexsha

    @multicache(key_prefix="commit_count", key_list=["repo_dir", "head_sha"])
    def _count_reachable(self, repo_dir, head_sha):
        with Repo(repo_dir) as repo:
            return int(repo.git.rev_list("--count", head_sha))

    def delete_repo(self, name):
        """Deletes a repository and everything in it.

        The directory is only removed if it has the layout of a bare
        repository; anything else in the hub is left alone.

        Args:
            name (str): Repository name, with or without ``.git``

        Raises:
            NotFoundError: If the repository does not exist
            InvalidRepositoryError: If the directory is not a bare git repository
            HubIOError: If removal fails
        """
        repo_dir = self.repo_path(name)

        if not is_bare_layout(repo_dir):
            raise InvalidRepositoryError(f"Path '{repo_dir}' is not a valid Git repository, refusing to delete it")

        try:
            shutil.rmtree(repo_dir)
        except OSError as e:
            raise HubIOError(f"Failed to delete repository '{name}' at {repo_dir}: {e}") from e

        logger.info(f"Deleted repository {os.path.basename(repo_dir)} from {self.hub_path}")

    def repo_table(self, count_commits=True):
        """Returns the detailed listing as a DataFrame.

        Args:
            count_commits (bool, optional): Fill in the commits column. Defaults to True.

        Returns:
            pandas.DataFrame: One row per repository with columns:
                - name (str): Directory name
                - path (str): Absolute path
                - size (int): Bytes on disk
                - modified (datetime64): Last modification time
                - commits (Int64): Commit count, <NA> when unknown
        """
        records = self.list_repos_detailed(count_commits=count_commits)
        df = pd.DataFrame(
            {
                "name": [r.name for r in records],
                "path": [r.path for r in records],
                "size": pd.array([r.size for r in records], dtype="int64"),
                "modified": pd.to_datetime([r.modified for r in records]),
                "commits": pd.array([r.commits for r in records], dtype="Int64"),
            },
            columns=RECORD_COLUMNS,
        )
        logger.debug(f"Generated repository table with {len(df)} rows.")
        return df
