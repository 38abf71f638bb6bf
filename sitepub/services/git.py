"""Minimal wrapper over the git command line used by the publisher."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import subprocess

from sitepub.models.errors import CommandError, GitCommandError
from sitepub.services.commands import SupportsCommandRunner, run_command


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GitRepository:
    """A git work tree driven through the ``git`` executable."""

    repo_path: Path
    git_executable: str = "git"
    runner: SupportsCommandRunner = run_command

    @classmethod
    def open(
        cls,
        path: Path,
        *,
        git_executable: str = "git",
        runner: SupportsCommandRunner = run_command,
    ) -> "GitRepository":
        """Return the repository containing ``path`` or raise if it is not a work tree."""

        if not path.exists():
            raise GitCommandError(f"Repository path '{path}' does not exist")
        probe = cls(repo_path=path, git_executable=git_executable, runner=runner)
        top_level = probe._run_git("rev-parse", "--show-toplevel").stdout.strip()
        return cls(repo_path=Path(top_level), git_executable=git_executable, runner=runner)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def head(self) -> str:
        return self._run_git("rev-parse", "HEAD").stdout.strip()

    def short_head(self) -> str:
        """Return the abbreviated id of the latest commit on the current branch."""

        return self._run_git("rev-parse", "--short", "HEAD").stdout.strip()

    def current_branch(self) -> str:
        return self._run_git("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def branch_exists(self, name: str, remote: str | None = None) -> bool:
        ref = f"refs/remotes/{remote}/{name}" if remote else f"refs/heads/{name}"
        result = self._run_git("show-ref", "--verify", "--quiet", ref, check=False)
        return result.returncode == 0

    def has_staged_changes(self) -> bool:
        """Return ``True`` when the index differs from ``HEAD``."""

        result = self._run_git("diff", "--cached", "--quiet", check=False)
        if result.returncode not in (0, 1):
            raise GitCommandError(f"git diff --cached failed: {result.stderr.strip()}")
        return result.returncode == 1

    def is_clean(self) -> bool:
        return not self._run_git("status", "--porcelain").stdout.strip()

    def remotes(self) -> list[str]:
        return [line.strip() for line in self._run_git("remote").stdout.splitlines() if line.strip()]

    def log_messages(self, branch: str | None = None, limit: int | None = None) -> list[str]:
        args = ["log", "--pretty=%s"]
        if limit is not None:
            args.append(f"--max-count={limit}")
        if branch:
            args.append(branch)
        return [line for line in self._run_git(*args).stdout.splitlines() if line]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def checkout(self, branch: str, *, track: str | None = None) -> None:
        """Check out ``branch``, creating it from ``track/branch`` when only the remote has it."""

        if self.branch_exists(branch):
            self._run_git("checkout", branch)
        elif track and self.branch_exists(branch, remote=track):
            logger.info("Creating local branch %s tracking %s/%s", branch, track, branch)
            self._run_git("checkout", "-b", branch, "--track", f"{track}/{branch}")
        else:
            raise GitCommandError(f"Branch '{branch}' does not exist locally or on a tracked remote")

    def remove(self, path: str) -> None:
        self._run_git("rm", "-r", "-q", "--ignore-unmatch", "--", path)

    def add(self, path: str) -> None:
        self._run_git("add", "--all", "--", path)

    def commit(self, message: str) -> str:
        """Commit the index and return the new commit hash."""

        self._run_git("commit", "-m", message)
        return self.head()

    def add_remote(self, name: str, url: str, *, push_refspec: str | None = None) -> None:
        self._run_git("remote", "add", name, url)
        if push_refspec:
            self._run_git("config", "--add", f"remote.{name}.push", push_refspec)

    def remove_remote(self, name: str) -> None:
        self._run_git("remote", "remove", name)

    def push(self, remote: str, branch: str) -> None:
        self._run_git("push", remote, branch)

    def _run_git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Execute a Git command within the repository and raise on error."""

        try:
            return self.runner([self.git_executable, *args], cwd=self.repo_path, check=check)
        except CommandError as exc:
            command = " ".join(args)
            raise GitCommandError(f"git {command} failed: {(exc.stderr or exc.stdout).strip()}") from exc
        except OSError as exc:
            raise GitCommandError(f"Unable to execute {self.git_executable}: {exc}") from exc
