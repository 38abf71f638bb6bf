"""Incremental Jekyll build executed inside the generator container."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import json
import logging
from pathlib import Path
import shlex
import shutil
import subprocess
from typing import Iterable, Protocol

from sitepub.models.container import ContainerHandle
from sitepub.models.errors import BuildError
from sitepub.models.site import BuildArtifact
from sitepub.services.commands import output_tail
from sitepub.services.config import PipelineSettings


logger = logging.getLogger(__name__)

FINGERPRINT_FILE = ".sitepub-build.json"
_STAGED_PATTERNS = ("Gemfile*", "Rakefile")
# Written into the source tree by ``jekyll build --incremental``.
_IGNORED_INPUTS = frozenset({".jekyll-metadata"})


class SupportsContainerExec(Protocol):
    """Subset of :class:`DockerProvisioner` relied upon by the build and test stages."""

    def exec(self, handle: ContainerHandle, script: str) -> subprocess.CompletedProcess[str]:
        """Run ``script`` inside the container."""


def fingerprint_inputs(paths: Iterable[Path], root: Path, *, ignore: Iterable[str] = ()) -> str:
    """Return a digest of the relative path, size, and mtime of every file under ``paths``.

    Files whose name is in ``ignore`` are left out of the digest.
    """

    ignored = frozenset(ignore)
    digest = hashlib.sha256()
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(
                candidate for candidate in path.rglob("*") if candidate.is_file() and candidate.name not in ignored
            )
        elif path.is_file():
            files.append(path)
        else:
            digest.update(f"missing:{path}\n".encode("utf-8"))

    for file_path in sorted(set(files)):
        stat = file_path.stat()
        relative = file_path.relative_to(root) if file_path.is_relative_to(root) else file_path
        digest.update(f"{relative.as_posix()}:{stat.st_size}:{stat.st_mtime_ns}\n".encode("utf-8"))
    return digest.hexdigest()


@dataclass(slots=True)
class JekyllSiteBuilder:
    """Stage the build directory and run ``jekyll build`` in incremental mode."""

    settings: PipelineSettings
    container: SupportsContainerExec

    def setup_build_dir(self) -> list[Path]:
        """Copy the Gemfiles and Rakefile from the website directory into the build directory."""

        build_path = self.settings.build_path
        build_path.mkdir(parents=True, exist_ok=True)
        copied: list[Path] = []
        for pattern in _STAGED_PATTERNS:
            for source in sorted(self.settings.website_path.glob(pattern)):
                if source.is_file():
                    destination = build_path / source.name
                    shutil.copy2(source, destination)
                    copied.append(destination)
        return copied

    def clean(self) -> bool:
        """Delete the build directory, returning ``True`` if anything was removed."""

        build_path = self.settings.build_path
        if not build_path.exists():
            return False
        shutil.rmtree(build_path)
        logger.info("Removed %s", build_path)
        return True

    def build(
        self,
        handle: ContainerHandle,
        *,
        source_dir: Path | None = None,
        config_path: Path | None = None,
        force: bool = False,
    ) -> BuildArtifact:
        """Run the generator and return the generated content directory."""

        settings = self.settings
        source = source_dir or settings.source_dir
        config = config_path or settings.config_path
        artifact = BuildArtifact(content_dir=settings.build_content_path, cache_dir=settings.cache_path)

        if not settings.resolve(source).is_dir():
            raise BuildError(f"Site source directory '{settings.resolve(source)}' does not exist")
        if not settings.resolve(config).is_file():
            raise BuildError(f"Site config file '{settings.resolve(config)}' does not exist")

        self.setup_build_dir()
        fingerprint = fingerprint_inputs(self._inputs(source, config), settings.project_root, ignore=_IGNORED_INPUTS)
        if not force and self._is_up_to_date(artifact, fingerprint):
            logger.info("Website build is up to date; skipping generator run")
            artifact.skipped = True
            return artifact

        workdir = settings.container_path(settings.build_dir)
        script = (
            f"cd {shlex.quote(workdir)} && "
            "bundle exec jekyll build "
            f"--config {shlex.quote(settings.container_path(config))} "
            "--incremental "
            f"--source {shlex.quote(settings.container_path(source))}"
        )
        logger.info("Building website from %s", source)
        result = self.container.exec(handle, script)
        if result.returncode != 0:
            raise BuildError(f"jekyll build exited with status {result.returncode}:\n{output_tail(result)}")

        self._write_fingerprint(fingerprint, self._outputs_fingerprint(artifact))
        logger.info("Website generated in %s", artifact.content_dir)
        return artifact

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _inputs(self, source: Path, config: Path) -> list[Path]:
        settings = self.settings
        return [
            settings.website_path / "Gemfile.lock",
            settings.resolve(config),
            settings.resolve(source),
        ]

    def _is_up_to_date(self, artifact: BuildArtifact, fingerprint: str) -> bool:
        if not (artifact.cache_dir.is_dir() and artifact.content_dir.is_dir()):
            return False
        stamp = self.settings.build_path / FINGERPRINT_FILE
        if not stamp.is_file():
            return False
        try:
            recorded = json.loads(stamp.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return False
        if not isinstance(recorded, dict):
            return False
        return recorded.get("inputs") == fingerprint and recorded.get("outputs") == self._outputs_fingerprint(artifact)

    def _outputs_fingerprint(self, artifact: BuildArtifact) -> str:
        return fingerprint_inputs([artifact.content_dir], self.settings.project_root)

    def _write_fingerprint(self, inputs: str, outputs: str) -> None:
        stamp = self.settings.build_path / FINGERPRINT_FILE
        stamp.write_text(json.dumps({"inputs": inputs, "outputs": outputs}), encoding="utf-8")


__all__ = ["JekyllSiteBuilder", "SupportsContainerExec", "fingerprint_inputs"]
