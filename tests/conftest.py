"""Pytest configuration and fixtures."""

import logging
import shutil
import subprocess
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from pqcscan.core.config import get_settings
from pqcscan.database import MemoryScanStore
from pqcscan.models import RepositoryInfo, ScanConfig, ScanJob


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep workspaces and the database inside the test's tmp directory."""
    monkeypatch.setenv("WORKSPACE_ROOT", str(tmp_path / "workspaces"))
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'pqcscan.db'}")
    monkeypatch.setenv("SCHEDULER_TICK_SECONDS", "0.01")
    monkeypatch.setenv("LOG_FORMAT", "text")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    """Undo logging configured by CLI invocations, whose streams are closed afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def sample_repository() -> RepositoryInfo:
    """Sample repository for testing."""
    return RepositoryInfo(url="https://github.com/example/crypto-app", name="crypto-app")


@pytest.fixture
def sample_job(sample_repository: RepositoryInfo) -> ScanJob:
    """Pending job running only the in-process analyzer."""
    return ScanJob(
        repository=sample_repository,
        branch="main",
        config=ScanConfig(tools=["pqc-analyzer"]),
    )


@pytest.fixture
def memory_store() -> MemoryScanStore:
    return MemoryScanStore()


def _git(*args: str, cwd: Path) -> None:
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
    )


@pytest.fixture
def make_git_repo(tmp_path: Path):
    """Create a local git repository with the given files on branch ``main``.

    Returns a factory ``(files, branches=()) -> file:// URL``.
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    counter = 0

    def factory(files: dict[str, str], branches: tuple[str, ...] = ()) -> str:
        nonlocal counter
        counter += 1
        repo = tmp_path / f"origin-{counter}"
        repo.mkdir()
        _git("init", "-q", cwd=repo)
        _git("symbolic-ref", "HEAD", "refs/heads/main", cwd=repo)
        for name, content in files.items():
            path = repo / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        _git("add", "-A", cwd=repo)
        _git("commit", "-q", "-m", "initial", cwd=repo)
        for branch in branches:
            _git("branch", branch, cwd=repo)
        return repo.resolve().as_uri()

    return factory
