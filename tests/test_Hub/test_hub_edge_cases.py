import os
import shutil

import git
import pytest

from localhub import HubDirectory, InvalidNameError, InvalidRepositoryError, NotFoundError
from localhub.hub import MAX_NAME_BYTES, normalize_name, validate_name


class TestNameValidation:
    @pytest.mark.parametrize("char", ["/", "\\", ":", "*", "?", '"', "<", ">", "|"])
    def test_forbidden_characters(self, hub, hub_path, char):
        with pytest.raises(InvalidNameError, match="cannot contain"):
            hub.create_repo(f"bad{char}name")
        assert hub.list_repos() == []
        assert not hub_path.exists()

    @pytest.mark.parametrize("name", [".", ".."])
    def test_reserved_names(self, hub, name):
        with pytest.raises(InvalidNameError, match="cannot be"):
            hub.create_repo(name)

    def test_empty_name(self, hub):
        with pytest.raises(InvalidNameError, match="empty"):
            hub.create_repo("")

    def test_name_length_limit(self):
        validate_name("a" * MAX_NAME_BYTES)
        with pytest.raises(InvalidNameError, match="too long"):
            validate_name("a" * (MAX_NAME_BYTES + 1))

    @pytest.mark.parametrize("length", [240, MAX_NAME_BYTES - len(".git")])
    def test_long_names_are_created(self, hub, hub_path, length):
        name = "a" * length
        repo_path = hub.create_repo(name)

        assert repo_path == str(hub_path / f"{name}.git")
        assert hub.is_valid_repo(name)
        assert os.listdir(hub_path) == [f"{name}.git"]

    def test_length_counts_bytes(self):
        # 128 two-byte characters are 256 bytes
        with pytest.raises(InvalidNameError, match="too long"):
            validate_name("é" * 128)

    @pytest.mark.parametrize("name", ["proj", "my-project_2", "proj.git", "with space", "ünïcode"])
    def test_valid_names(self, name):
        validate_name(name)

    def test_normalize_name(self):
        assert normalize_name("proj") == "proj.git"
        assert normalize_name("proj.git") == "proj.git"
        assert normalize_name("proj.gitx") == "proj.gitx.git"


class TestDeleteSafety:
    def test_delete_missing(self, hub):
        with pytest.raises(NotFoundError):
            hub.delete_repo("ghost")

    def test_delete_refuses_non_repository(self, hub, hub_path):
        hub.init()
        impostor = hub_path / "photos.git"
        impostor.mkdir()
        (impostor / "holiday.jpg").write_bytes(b"\xff\xd8")

        with pytest.raises(InvalidRepositoryError, match="not a valid Git repository"):
            hub.delete_repo("photos")

        assert (impostor / "holiday.jpg").read_bytes() == b"\xff\xd8"
        assert hub.repo_exists("photos")
        assert not hub.is_valid_repo("photos")

    @pytest.mark.parametrize("missing", ["HEAD", "objects", "refs"])
    def test_delete_requires_full_layout(self, hub, missing):
        path = hub.create_repo("proj")
        target = os.path.join(path, missing)
        if os.path.isdir(target):
            shutil.rmtree(target)
        else:
            os.remove(target)

        with pytest.raises(InvalidRepositoryError):
            hub.delete_repo("proj")
        assert hub.repo_exists("proj")

    def test_delete_refuses_plain_file(self, hub, hub_path):
        hub.init()
        (hub_path / "data.git").write_text("not a directory")
        with pytest.raises(InvalidRepositoryError):
            hub.delete_repo("data")
        assert (hub_path / "data.git").exists()

    def test_names_cannot_escape_hub(self, hub, tmp_path):
        hub.init()
        outside = HubDirectory(tmp_path / "elsewhere")
        outside.create_repo("victim")

        assert not hub.repo_exists("../elsewhere/victim")
        with pytest.raises(NotFoundError):
            hub.delete_repo("../elsewhere/victim")
        assert outside.repo_exists("victim")


class TestCommitCountEdgeCases:
    def test_head_pointing_at_tag_object(self, populated_hub):
        path = populated_hub.repo_path("proj")
        with git.Repo(path) as repo:
            tag = repo.create_tag("v1", ref=repo.head.commit, message="annotated")
            tag_sha = tag.tag.hexsha
        with open(os.path.join(path, "HEAD"), "w") as f:
            f.write(tag_sha + "\n")

        assert populated_hub.commit_count("proj") is None

    def test_unopenable_repository_has_no_count(self, hub, hub_path):
        hub.init()
        (hub_path / "broken.git").mkdir()
        assert hub.repo_info("broken").commits is None

    def test_count_for_detached_head(self, populated_hub):
        path = populated_hub.repo_path("proj")
        with git.Repo(path) as repo:
            first = list(repo.iter_commits())[-1].hexsha
        with open(os.path.join(path, "HEAD"), "w") as f:
            f.write(first + "\n")

        assert populated_hub.commit_count("proj") == 1
