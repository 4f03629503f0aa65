"""
Shared pytest fixtures for local-git-hub tests.
"""

import git
import pytest

from localhub import HubDirectory


def make_commit(repo, filename, content, message):
    """Write a file in a working repository and commit it."""
    path = f"{repo.working_tree_dir}/{filename}"
    with open(path, "w") as f:
        f.write(content)
    repo.index.add([filename])
    return repo.index.commit(message)


def push_to_bare(work_repo, bare_path):
    """Push the working repository's HEAD to the branch HEAD of a bare repository points at."""
    with git.Repo(bare_path) as bare:
        target_ref = bare.head.reference.path
    work_repo.git.push(str(bare_path), f"HEAD:{target_ref}")


@pytest.fixture
def hub_path(tmp_path):
    return tmp_path / "hub"


@pytest.fixture
def hub(hub_path):
    """A HubDirectory whose root does not exist yet."""
    return HubDirectory(hub_path)


@pytest.fixture
def work_repo(tmp_path):
    """A non-bare repository with two commits."""
    repo_path = tmp_path / "work"
    repo_path.mkdir()
    repo = git.Repo.init(repo_path)

    # Configure git user
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    make_commit(repo, "README.md", "# Test Repository", "Initial commit")
    make_commit(repo, "main.py", "print('hello')", "Add main")

    yield repo
    repo.close()


@pytest.fixture
def empty_work_repo(tmp_path):
    """A freshly initialized non-bare repository without commits or remotes."""
    repo_path = tmp_path / "fresh"
    repo_path.mkdir()
    repo = git.Repo.init(repo_path)
    yield repo
    repo.close()


@pytest.fixture
def populated_hub(hub, work_repo):
    """A hub holding ``proj.git`` with the two commits of ``work_repo`` and an empty ``empty.git``."""
    proj_path = hub.create_repo("proj")
    push_to_bare(work_repo, proj_path)
    hub.create_repo("empty")
    return hub



@pytest.fixture
def commit_and_push(work_repo):
    """Returns a function adding one commit to ``work_repo`` and pushing it to a bare repository."""

    def _commit_and_push(bare_path, filename="extra.txt", message="Extra commit"):
        make_commit(work_repo, filename, filename, message)
        push_to_bare(work_repo, bare_path)

    return _commit_and_push


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
