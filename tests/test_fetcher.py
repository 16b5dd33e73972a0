"""Tests for the repository fetcher against local git repositories."""

import pytest

from pqcscan.core.config import get_settings
from pqcscan.core.exceptions import FetchError
from pqcscan.workspace import RepositoryFetcher


class TestRepositoryFetcher:
    async def test_clone_branch(self, make_git_repo):
        url = make_git_repo({"app.py": "print('hi')\n"}, branches=("develop",))
        fetcher = RepositoryFetcher()

        workspace = await fetcher.fetch(url, "develop", "job-1")

        assert workspace.branch == "develop"
        assert not workspace.used_default_branch
        assert (workspace.path / "app.py").read_text() == "print('hi')\n"
        assert workspace.path == fetcher.workspace_for("job-1")
        assert workspace.path.parent == get_settings().workspace_root

    async def test_missing_branch_falls_back_to_default(self, make_git_repo):
        url = make_git_repo({"app.py": "x = 1\n"})
        workspace = await RepositoryFetcher().fetch(url, "no-such-branch", "job-2")

        assert workspace.used_default_branch
        assert workspace.requested_branch == "no-such-branch"
        assert workspace.branch == "main"
        assert (workspace.path / "app.py").exists()

    async def test_unreachable_repository_raises(self, tmp_path):
        fetcher = RepositoryFetcher()
        missing = (tmp_path / "nowhere").as_uri()
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch(missing, "main", "job-3")
        assert exc_info.value.url == missing
        assert not fetcher.workspace_for("job-3").exists()

    async def test_missing_git_raises_fetch_error(self, tmp_path):
        fetcher = RepositoryFetcher(git_executable="pqcscan-no-such-git")
        with pytest.raises(FetchError):
            await fetcher.fetch(tmp_path.as_uri(), "main", "job-4")

    async def test_cleanup_removes_workspace(self, make_git_repo):
        url = make_git_repo({"a.txt": "a\n"})
        fetcher = RepositoryFetcher()
        workspace = await fetcher.fetch(url, "main", "job-5")

        await fetcher.cleanup(workspace.path)
        assert not workspace.path.exists()
        # A second cleanup is a no-op
        await fetcher.cleanup(workspace.path)

    async def test_refetch_replaces_stale_workspace(self, make_git_repo):
        url = make_git_repo({"a.txt": "a\n"})
        fetcher = RepositoryFetcher()
        stale = fetcher.workspace_for("job-6")
        stale.mkdir(parents=True)
        (stale / "leftover.txt").write_text("old")

        workspace = await fetcher.fetch(url, "main", "job-6")
        assert not (workspace.path / "leftover.txt").exists()
        assert (workspace.path / "a.txt").exists()
