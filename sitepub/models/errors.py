"""Error taxonomy shared by every stage of the website publishing pipeline."""

from __future__ import annotations

from typing import Sequence


class SitePublishError(Exception):
    """Base exception for all pipeline failures."""

    exit_code = 1


class CommandError(SitePublishError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stdout: str = "", stderr: str = "") -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout).strip()
        message = f"{' '.join(self.args_list)} exited with status {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProvisionError(SitePublishError):
    """Image build, container creation, or container start failed."""


class BuildError(SitePublishError):
    """The site generator build command failed."""


class TestError(SitePublishError):
    """The site generator test command failed."""

    __test__ = False


class InvariantError(SitePublishError):
    """Generated content failed a pre-publication assertion."""

    exit_code = 2


class PublishError(SitePublishError):
    """A git operation on the publishing branch failed."""


class GitCommandError(PublishError):
    """A git subprocess exited with a non-zero status."""


__all__ = [
    "BuildError",
    "CommandError",
    "GitCommandError",
    "InvariantError",
    "ProvisionError",
    "PublishError",
    "SitePublishError",
    "TestError",
]
