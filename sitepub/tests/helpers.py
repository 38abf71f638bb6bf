"""Helpers shared by tests that drive real git repositories, fake command runners, and stub stages."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
import subprocess
from typing import Iterator, Sequence

from sitepub.models.container import ContainerHandle, ImageSpec
from sitepub.models.errors import CommandError, ProvisionError
from sitepub.models.publisher import PublicationResult, PublishOutcome
from sitepub.models.site import BuildArtifact, TestResult
from sitepub.services.config import PipelineSettings
from sitepub.services.pipeline import WebsitePipeline


def git(path: Path, *args: str) -> str:
    """Run git in ``path`` and return its stdout."""

    result = subprocess.run(
        ["git", *args],
        cwd=path,
        check=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    return result.stdout


def configure_identity(path: Path) -> None:
    git(path, "config", "user.name", "Website Bot")
    git(path, "config", "user.email", "bot@example.com")
    git(path, "config", "commit.gpgsign", "false")


def write_files(root: Path, files: dict[str, str]) -> None:
    for relative, content in files.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")


@dataclass(slots=True)
class RecordingRunner:
    """Command runner double that records argv lists and returns canned results per subcommand."""

    results: dict[str, subprocess.CompletedProcess[str]] = field(default_factory=dict)
    calls: list[list[str]] = field(default_factory=list)

    def respond(self, subcommand: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.results[subcommand] = subprocess.CompletedProcess(
            args=[subcommand], returncode=returncode, stdout=stdout, stderr=stderr
        )

    def subcommands(self) -> list[str]:
        return [call[1] for call in self.calls]

    def __call__(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        self.calls.append(list(args))
        result = self.results.get(
            args[1], subprocess.CompletedProcess(args=list(args), returncode=0, stdout="", stderr="")
        )
        if check and result.returncode != 0:
            raise CommandError(args, result.returncode, result.stdout, result.stderr)
        return result


@dataclass(slots=True)
class StubProvisioner:
    events: list[str]
    fail: bool = False

    def provision(self, image: ImageSpec, handle: ContainerHandle | None = None) -> ContainerHandle:
        self.events.append(f"provision:{image.tag}")
        if self.fail:
            raise ProvisionError("docker daemon unavailable")
        handle = handle or ContainerHandle(image_tag=image.tag)
        handle.container_id = "c0ffee"
        handle.started = True
        return handle

    def teardown(self, handle: ContainerHandle) -> None:
        self.events.append("teardown")

    @contextmanager
    def running(self, image: ImageSpec) -> Iterator[ContainerHandle]:
        handle = ContainerHandle(image_tag=image.tag)
        try:
            yield self.provision(image, handle)
        finally:
            self.teardown(handle)


@dataclass(slots=True)
class StubBuilder:
    events: list[str]
    artifact: BuildArtifact
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    def build(
        self,
        handle: ContainerHandle,
        *,
        source_dir: Path | None = None,
        config_path: Path | None = None,
        force: bool = False,
    ) -> BuildArtifact:
        handle.require_id()
        self.events.append("build")
        self.calls.append({"source_dir": source_dir, "config_path": config_path, "force": force})
        if self.error:
            raise self.error
        return self.artifact

    def clean(self) -> bool:
        self.events.append("clean")
        return True


@dataclass(slots=True)
class StubTester:
    events: list[str]
    error: Exception | None = None

    def test(self, handle: ContainerHandle, artifact: BuildArtifact) -> TestResult:
        self.events.append("test")
        if self.error:
            raise self.error
        return TestResult(returncode=0, stdout="ok")


@dataclass(slots=True)
class StubPublisher:
    events: list[str]
    outcome: PublishOutcome = PublishOutcome.COMMITTED
    error: Exception | None = None
    committed: list[BuildArtifact] = field(default_factory=list)
    pushed: list[PublicationResult] = field(default_factory=list)

    def commit(self, artifact: BuildArtifact) -> PublicationResult:
        self.events.append("commit")
        if self.error:
            raise self.error
        self.committed.append(artifact)
        return PublicationResult(outcome=self.outcome, branch="asf-site", source_commit="abc1234")

    def push(self, result: PublicationResult) -> PublicationResult:
        self.events.append("push")
        self.pushed.append(result)
        if not result.committed:
            return PublicationResult(outcome=PublishOutcome.NO_CHANGE, branch="asf-site")
        return PublicationResult(outcome=PublishOutcome.COMMITTED_AND_PUSHED, branch="asf-site")


def make_pipeline(
    tmp_path: Path,
    events: list[str],
    *,
    settings: PipelineSettings | None = None,
    **overrides: object,
) -> WebsitePipeline:
    settings = settings or PipelineSettings(project_root=tmp_path)
    artifact = BuildArtifact(content_dir=settings.build_content_path, cache_dir=settings.cache_path)
    components: dict[str, object] = {
        "provisioner": StubProvisioner(events),
        "builder": StubBuilder(events, artifact),
        "tester": StubTester(events),
        "publisher": StubPublisher(events),
    }
    components.update(overrides)
    return WebsitePipeline(settings=settings, **components)  # type: ignore[arg-type]
