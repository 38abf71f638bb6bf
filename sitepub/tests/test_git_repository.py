from __future__ import annotations

from pathlib import Path

import pytest

from sitepub.models.errors import GitCommandError, PublishError
from sitepub.services.git import GitRepository
from sitepub.tests.helpers import configure_identity, git, write_files


def test_open_rejects_non_repository(tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()

    with pytest.raises(GitCommandError):
        GitRepository.open(plain)

    with pytest.raises(PublishError):
        GitRepository.open(tmp_path / "missing")


def test_open_from_subdirectory_finds_top_level(source_repo: Path) -> None:
    nested = source_repo / "docs" / "nested"
    nested.mkdir(parents=True)

    repo = GitRepository.open(nested)

    assert repo.repo_path == source_repo
    assert repo.current_branch() == "main"
    assert repo.short_head() == git(source_repo, "rev-parse", "--short", "HEAD").strip()


def test_staged_changes_and_clean_status(source_repo: Path) -> None:
    repo = GitRepository.open(source_repo)
    assert repo.is_clean()
    assert not repo.has_staged_changes()

    write_files(source_repo, {"notes.txt": "hello\n"})
    assert not repo.is_clean()
    assert not repo.has_staged_changes()

    repo.add("notes.txt")
    assert repo.has_staged_changes()

    commit_hash = repo.commit("Add notes")
    assert commit_hash == repo.head()
    assert repo.log_messages(limit=1) == ["Add notes"]
    assert repo.is_clean()


def test_remove_ignores_unmatched_paths(source_repo: Path) -> None:
    repo = GitRepository.open(source_repo)

    repo.remove("website/generated-content")

    assert not repo.has_staged_changes()


def test_remote_management(source_repo: Path, bare_remote: Path) -> None:
    repo = GitRepository.open(source_repo)

    repo.add_remote("website-publish", str(bare_remote), push_refspec="refs/heads/asf-site")

    assert repo.remotes() == ["website-publish"]
    assert git(source_repo, "config", "--get", "remote.website-publish.push").strip() == "refs/heads/asf-site"

    repo.push("website-publish", "asf-site")
    assert git(bare_remote, "rev-parse", "refs/heads/asf-site").strip() == git(
        source_repo, "rev-parse", "asf-site"
    ).strip()

    repo.remove_remote("website-publish")
    assert repo.remotes() == []


def test_checkout_creates_tracking_branch(source_repo: Path, bare_remote: Path, tmp_path: Path) -> None:
    git(source_repo, "push", "-q", str(bare_remote), "main", "asf-site")
    clone = tmp_path / "clone"
    git(tmp_path, "clone", "-q", "--branch", "main", str(bare_remote), str(clone))
    configure_identity(clone)
    repo = GitRepository.open(clone)

    assert not repo.branch_exists("asf-site")
    assert repo.branch_exists("asf-site", remote="origin")

    repo.checkout("asf-site", track="origin")

    assert repo.current_branch() == "asf-site"
    assert git(clone, "rev-parse", "--abbrev-ref", "asf-site@{upstream}").strip() == "origin/asf-site"


def test_checkout_unknown_branch_fails(source_repo: Path) -> None:
    repo = GitRepository.open(source_repo)

    with pytest.raises(GitCommandError, match="gh-pages"):
        repo.checkout("gh-pages", track="origin")
