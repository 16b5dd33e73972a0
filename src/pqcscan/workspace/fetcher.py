"""Repository fetcher: shallow clones into per-job workspaces."""

import asyncio
import os
import shutil
from pathlib import Path

from pydantic import BaseModel

from pqcscan.core.config import get_settings
from pqcscan.core.exceptions import (
    ExecutableNotFoundError,
    FetchError,
    OutputLimitError,
    ProcessTimeoutError,
)
from pqcscan.core.logging import get_logger
from pqcscan.infrastructure.process import ProcessResult, ProcessRunner, run_process

GIT_OUTPUT_LIMIT = 1024 * 1024


class Workspace(BaseModel):
    """A materialized working copy owned by one job."""

    path: Path
    requested_branch: str | None = None
    branch: str | None = None
    used_default_branch: bool = False


class RepositoryFetcher:
    """Clones repositories with git, one isolated directory per job."""

    # git reports a missing branch with one of these (lowercased) fragments
    BRANCH_NOT_FOUND_MARKERS = (
        "remote branch",
        "couldn't find remote ref",
        "could not find remote branch",
    )

    def __init__(
        self,
        workspace_root: Path | None = None,
        git_executable: str | None = None,
        timeout: float | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        settings = get_settings()
        self.logger = get_logger("fetcher")
        self.workspace_root = Path(workspace_root or settings.workspace_root)
        self.git = git_executable or settings.git_executable
        self.timeout = timeout or settings.clone_timeout_seconds
        self._runner = runner or run_process

    def workspace_for(self, job_id: str) -> Path:
        """Return the workspace directory reserved for a job."""
        return self.workspace_root / f"scan-{job_id}"

    async def fetch(self, url: str, branch: str | None, job_id: str) -> Workspace:
        """Shallow-clone ``url`` at ``branch`` into the job's workspace.

        A branch missing on the remote is retried once against the remote's
        default branch. Any other failure raises FetchError.
        """
        path = self.workspace_for(job_id)
        await self.cleanup(path)
        self.workspace_root.mkdir(parents=True, exist_ok=True)

        self.logger.info("clone_started", job_id=job_id, url=url, branch=branch)
        result = await self._clone(url, branch, path)

        if result.returncode == 0:
            self.logger.info("clone_completed", job_id=job_id, branch=branch)
            return Workspace(path=path, requested_branch=branch, branch=branch)

        stderr = result.stderr_text.strip()
        if branch and self._is_missing_branch(stderr):
            self.logger.warning(
                "branch_not_found_falling_back",
                job_id=job_id,
                branch=branch,
            )
            await self.cleanup(path)
            result = await self._clone(url, None, path)
            if result.returncode == 0:
                resolved = await self._current_branch(path)
                self.logger.info("clone_completed", job_id=job_id, branch=resolved, fallback=True)
                return Workspace(
                    path=path,
                    requested_branch=branch,
                    branch=resolved,
                    used_default_branch=True,
                )
            stderr = result.stderr_text.strip()

        await self.cleanup(path)
        raise FetchError(
            f"Failed to clone repository: {stderr or f'git exited with {result.returncode}'}",
            url=url,
            branch=branch,
        )

    async def cleanup(self, path: Path) -> None:
        """Remove a workspace directory. Never raises."""
        if not path.exists():
            return
        try:
            await asyncio.to_thread(shutil.rmtree, path)
            self.logger.debug("workspace_removed", path=str(path))
        except OSError as e:
            self.logger.warning("workspace_cleanup_failed", path=str(path), error=str(e))

    async def _clone(self, url: str, branch: str | None, path: Path) -> ProcessResult:
        args = [self.git, "clone", "--depth", "1", "--single-branch"]
        if branch:
            args += ["--branch", branch]
        args += ["--", url, str(path)]
        return await self._git(args, url, branch)

    async def _current_branch(self, path: Path) -> str | None:
        try:
            result = await self._git(
                [self.git, "-C", str(path), "rev-parse", "--abbrev-ref", "HEAD"],
                None,
                None,
            )
        except FetchError:
            return None
        name = result.stdout_text.strip()
        return name if result.returncode == 0 and name else None

    async def _git(self, args: list[str], url: str | None, branch: str | None) -> ProcessResult:
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            return await self._runner(
                args,
                timeout=self.timeout,
                max_output_bytes=GIT_OUTPUT_LIMIT,
                env=env,
            )
        except ProcessTimeoutError as e:
            raise FetchError(
                f"Repository clone timed out after {self.timeout}s",
                url=url,
                branch=branch,
            ) from e
        except (ExecutableNotFoundError, OutputLimitError) as e:
            raise FetchError(str(e), url=url, branch=branch) from e

    def _is_missing_branch(self, stderr: str) -> bool:
        lowered = stderr.lower()
        return any(marker in lowered for marker in self.BRANCH_NOT_FOUND_MARKERS)
