"""
Sets up a throwaway hub next to a throwaway project and wires the two together.
"""

import os
import tempfile

from git import Repo

from localhub import HubDirectory, RemoteManager
from localhub.cache import EphemeralCache

if __name__ == "__main__":
    workdir = tempfile.mkdtemp()

    hub = HubDirectory(os.path.join(workdir, "hub"), cache_backend=EphemeralCache())
    hub_repo = hub.create_repo("project")

    project_dir = os.path.join(workdir, "project")
    project = Repo.init(project_dir)
    project.config_writer().set_value("user", "name", "Example").release()
    project.config_writer().set_value("user", "email", "example@example.com").release()
    with open(os.path.join(project_dir, "README.md"), "w") as f:
        f.write("# project\n")
    project.index.add(["README.md"])
    project.index.commit("Initial commit")

    remotes = RemoteManager(project_dir)
    remotes.add_remote("local-hub", hub_repo)
    project.git.push("local-hub", "HEAD:refs/heads/main")
    with Repo(hub_repo) as bare:
        bare.head.reference = bare.heads.main

    print(remotes.list_remotes())
    print(hub.repo_table())
