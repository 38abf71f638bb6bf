"""Run the generator's test task against the built website."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import shlex

from sitepub.models.container import ContainerHandle
from sitepub.models.errors import TestError
from sitepub.models.site import BuildArtifact, TestResult
from sitepub.services.commands import output_tail
from sitepub.services.config import PipelineSettings
from sitepub.services.site_builder import SupportsContainerExec


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RakeSiteTester:
    """Execute ``rake test`` from the build directory inside the generator container."""

    settings: PipelineSettings
    container: SupportsContainerExec

    def test(self, handle: ContainerHandle, artifact: BuildArtifact) -> TestResult:
        if not artifact.exists():
            raise TestError(f"Generated content '{artifact.content_dir}' does not exist; build the website first")

        workdir = self.settings.container_path(self.settings.build_dir)
        logger.info("Testing website in %s", artifact.content_dir)
        result = self.container.exec(handle, f"cd {shlex.quote(workdir)} && bundle exec rake test")
        outcome = TestResult(returncode=result.returncode, stdout=result.stdout, stderr=result.stderr)
        if not outcome.passed:
            raise TestError(f"rake test exited with status {result.returncode}:\n{output_tail(result)}")

        logger.info("Website tests passed")
        return outcome
