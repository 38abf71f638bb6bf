"""Orchestration layer that chains provisioning, build, test, and publication."""
from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Protocol

from sitepub.models.container import ContainerHandle, ImageSpec
from sitepub.models.publisher import PublicationResult, PublishOutcome
from sitepub.models.site import BuildArtifact, TestResult
from sitepub.services.config import PipelineSettings
from sitepub.services.container import DockerProvisioner
from sitepub.services.git import GitRepository
from sitepub.services.publisher import WebsitePublisher
from sitepub.services.site_builder import JekyllSiteBuilder
from sitepub.services.site_tester import RakeSiteTester


logger = logging.getLogger(__name__)


class SupportsProvisioning(Protocol):
    """Subset of :class:`DockerProvisioner` relied on by the pipeline."""

    def provision(self, image: ImageSpec, handle: ContainerHandle | None = None) -> ContainerHandle:
        """Build the image and start a container."""

    def teardown(self, handle: ContainerHandle) -> None:
        """Remove the container."""

    def running(self, image: ImageSpec) -> AbstractContextManager[ContainerHandle]:
        """Yield a started container and remove it afterwards."""


class SupportsBuilding(Protocol):
    """Protocol describing the site builder interface."""

    def build(
        self,
        handle: ContainerHandle,
        *,
        source_dir: Path | None = None,
        config_path: Path | None = None,
        force: bool = False,
    ) -> BuildArtifact:
        """Generate the website and return the artifact."""

    def clean(self) -> bool:
        """Delete the build directory."""


class SupportsTesting(Protocol):
    """Protocol describing the site tester interface."""

    def test(self, handle: ContainerHandle, artifact: BuildArtifact) -> TestResult:
        """Run the generator's test task."""


class SupportsPublishing(Protocol):
    """Protocol describing the publisher interface."""

    def commit(self, artifact: BuildArtifact) -> PublicationResult:
        """Commit the artifact to the publishing branch."""

    def push(self, result: PublicationResult) -> PublicationResult:
        """Push a commit created by :meth:`commit`."""


@dataclass(slots=True)
class PipelineResult:
    """Structured summary of a pipeline execution."""

    artifact: BuildArtifact | None = None
    test_result: TestResult | None = None
    publication: PublicationResult | None = None

    @property
    def outcome(self) -> PublishOutcome:
        return self.publication.outcome if self.publication else PublishOutcome.NO_CHANGE


@dataclass(slots=True)
class WebsitePipeline:
    """Coordinate the container, build, test, and publishing stages."""

    settings: PipelineSettings
    provisioner: SupportsProvisioning
    builder: SupportsBuilding
    tester: SupportsTesting
    publisher: SupportsPublishing
    source_dir: Path | None = None
    config_path: Path | None = None

    @property
    def image(self) -> ImageSpec:
        return ImageSpec(tag=self.settings.image_tag, context=self.settings.website_path)

    def provision(self) -> ContainerHandle:
        """Start a container and leave it running for the operator."""

        return self.provisioner.provision(self.image)

    def build(self, *, force: bool = False) -> BuildArtifact:
        with self.provisioner.running(self.image) as handle:
            return self._build(handle, force=force)

    def test(self, *, force: bool = False) -> PipelineResult:
        """Build and test the website inside one container."""

        with self.provisioner.running(self.image) as handle:
            artifact = self._build(handle, force=force)
            test_result = self.tester.test(handle, artifact)
        return PipelineResult(artifact=artifact, test_result=test_result)

    def publish(self) -> PublicationResult:
        """Commit the most recent build output without rebuilding."""

        return self.publisher.commit(self._existing_artifact())

    def publish_push(self) -> PublicationResult:
        """Commit the most recent build output and push it in the same run."""

        return self.publisher.push(self.publish())

    def run(self, *, push: bool = False, force: bool = False) -> PipelineResult:
        """Execute provision, build, and test, then publish once the container is gone."""

        logger.info("Pipeline started for image %s", self.settings.image_tag)
        result = self.test(force=force)
        assert result.artifact is not None  # for mypy

        publication = self.publisher.commit(result.artifact)
        if push:
            publication = self.publisher.push(publication)
        result.publication = publication
        logger.info("Pipeline finished: %s", publication.outcome.value)
        return result

    def _build(self, handle: ContainerHandle, *, force: bool) -> BuildArtifact:
        return self.builder.build(
            handle,
            source_dir=self.source_dir,
            config_path=self.config_path,
            force=force,
        )

    def _existing_artifact(self) -> BuildArtifact:
        return BuildArtifact(content_dir=self.settings.build_content_path, cache_dir=self.settings.cache_path)


def build_pipeline(
    settings: PipelineSettings,
    *,
    source_dir: Path | None = None,
    config_path: Path | None = None,
) -> WebsitePipeline:
    """Wire the default Docker, Jekyll, and git implementations together."""

    provisioner = DockerProvisioner(
        project_root=settings.project_root,
        workdir=settings.docker_workdir,
        docker_executable=settings.docker_executable,
    )
    repository = GitRepository(repo_path=settings.project_root, git_executable=settings.git_executable)
    return WebsitePipeline(
        settings=settings,
        provisioner=provisioner,
        builder=JekyllSiteBuilder(settings=settings, container=provisioner),
        tester=RakeSiteTester(settings=settings, container=provisioner),
        publisher=WebsitePublisher(settings=settings, repository=repository),
        source_dir=source_dir,
        config_path=config_path,
    )
