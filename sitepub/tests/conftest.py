"""Shared fixtures for the test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from sitepub.services.config import PipelineSettings
from sitepub.tests.helpers import RecordingRunner, configure_identity, git, write_files


@pytest.fixture()
def source_repo(tmp_path: Path) -> Path:
    """Return a repository on ``main`` with an ``asf-site`` branch holding old published content."""

    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    configure_identity(repo)

    write_files(repo, {"README.md": "# Project\n", ".gitignore": "build/\n"})
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", "Initial commit")

    git(repo, "checkout", "-q", "-b", "asf-site")
    write_files(
        repo,
        {
            "website/generated-content/index.html": "<html>old</html>\n",
            "website/generated-content/stale.html": "<html>stale</html>\n",
        },
    )
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", "Seed published content")
    git(repo, "checkout", "-q", "main")
    return repo


@pytest.fixture()
def bare_remote(tmp_path: Path) -> Path:
    remote = tmp_path / "remote.git"
    git(tmp_path, "init", "-q", "--bare", str(remote))
    return remote


@pytest.fixture()
def write_artifact(source_repo: Path) -> Callable[[dict[str, str]], Path]:
    """Return a helper writing files into the repository's build output directory."""

    def _write(files: dict[str, str]) -> Path:
        content_dir = source_repo / "build" / "website" / "generated-content"
        write_files(content_dir, files)
        return content_dir

    return _write


@pytest.fixture()
def settings(source_repo: Path, bare_remote: Path) -> PipelineSettings:
    return PipelineSettings(project_root=source_repo, remote_url=str(bare_remote))


@pytest.fixture()
def docker_runner() -> RecordingRunner:
    runner = RecordingRunner()
    runner.respond("create", stdout="c0ffee1234567890\n")
    return runner
