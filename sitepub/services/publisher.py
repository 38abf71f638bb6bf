"""Publisher committing generated website content to the publishing branch and pushing it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
import shutil
from typing import Callable

from sitepub.models.errors import CommandError, InvariantError, PublishError
from sitepub.models.publisher import PublicationResult, PublishOutcome
from sitepub.models.site import BuildArtifact
from sitepub.services.config import PipelineSettings
from sitepub.services.git import GitRepository


logger = logging.getLogger(__name__)

COMMIT_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


def _local_now() -> datetime:
    return datetime.now().astimezone()


def commit_message(published_at: datetime, source_commit: str) -> str:
    """Return the message used for publishing commits."""

    return f"Publishing website {published_at.strftime(COMMIT_TIMESTAMP_FORMAT)} at commit {source_commit}"


@dataclass(slots=True)
class WebsitePublisher:
    """Replace the generated content on the publishing branch and push it upstream."""

    settings: PipelineSettings
    repository: GitRepository
    clock: Callable[[], datetime] = field(default=_local_now)

    def verify_artifact(self, artifact: BuildArtifact) -> None:
        """Raise :class:`InvariantError` when the artifact is incomplete or carries excluded content."""

        if not artifact.index_path.is_file():
            raise InvariantError(f"Generated content is missing {artifact.index_path}")

        unexpected = [path for path in self.settings.excluded_paths if (artifact.content_dir / path).exists()]
        if unexpected:
            raise InvariantError(f"unexpected generated doc content: {', '.join(unexpected)}")

    def commit(self, artifact: BuildArtifact, *, published_at: datetime | None = None) -> PublicationResult:
        """Commit ``artifact`` onto the publishing branch when it differs from the current content."""

        self.verify_artifact(artifact)

        settings = self.settings
        repo = self.repository
        branch = settings.publish_branch
        content_rel = settings.repo_content_dir.as_posix()
        repo_content = repo.repo_path / settings.repo_content_dir

        source_commit = repo.short_head()
        repo.checkout(branch, track=settings.tracking_remote)

        repo.remove(content_rel)
        if repo_content.exists():
            try:
                shutil.rmtree(repo_content)
            except OSError as exc:
                raise PublishError(f"Unable to remove previous content in {repo_content}: {exc}") from exc
        if (repo_content / "index.html").exists():
            raise InvariantError(f"Previous content in {repo_content} was not removed")

        try:
            shutil.copytree(artifact.content_dir, repo_content)
        except OSError as exc:
            raise PublishError(f"Unable to copy {artifact.content_dir} to {repo_content}: {exc}") from exc
        if not (repo_content / "index.html").is_file():
            raise InvariantError(f"Copied content in {repo_content} is missing index.html")
        repo.add(content_rel)

        published = published_at or self.clock()
        message = commit_message(published, source_commit)
        if not repo.has_staged_changes():
            logger.info("No changes to commit on %s", branch)
            return PublicationResult(
                outcome=PublishOutcome.NO_CHANGE,
                branch=branch,
                source_commit=source_commit,
                published_at=published,
            )

        logger.info("Creating commit for changes on %s", branch)
        commit_hash = repo.commit(message)
        return PublicationResult(
            outcome=PublishOutcome.COMMITTED,
            branch=branch,
            source_commit=source_commit,
            message=message,
            commit_hash=commit_hash,
            published_at=published,
        )

    def push(self, result: PublicationResult) -> PublicationResult:
        """Push the commit recorded in ``result`` through a temporary remote."""

        settings = self.settings
        repo = self.repository
        branch = settings.publish_branch
        repo.checkout(branch, track=settings.tracking_remote)

        if not result.committed:
            logger.info("No changes to push")
            return PublicationResult(
                outcome=PublishOutcome.NO_CHANGE,
                branch=branch,
                source_commit=result.source_commit,
                published_at=result.published_at,
            )

        remote = settings.remote_name
        try:
            if remote not in repo.remotes():
                logger.info("Adding %s remote", remote)
                repo.add_remote(remote, settings.remote_url, push_refspec=f"refs/heads/{branch}")
            logger.info("Pushing %s to %s", branch, remote)
            repo.push(remote, branch)
        finally:
            self._remove_remote(remote)

        return PublicationResult(
            outcome=PublishOutcome.COMMITTED_AND_PUSHED,
            branch=branch,
            source_commit=result.source_commit,
            message=result.message,
            commit_hash=result.commit_hash,
            published_at=result.published_at,
        )

    def _remove_remote(self, remote: str) -> None:
        try:
            if remote in self.repository.remotes():
                self.repository.remove_remote(remote)
        except (PublishError, CommandError, OSError) as exc:
            logger.warning("Failed to remove %s remote: %s", remote, exc)


__all__ = ["COMMIT_TIMESTAMP_FORMAT", "WebsitePublisher", "commit_message"]
