"""Docker provisioning for the containerised site generator."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import subprocess
from typing import Callable, Iterator

from sitepub.models.container import ContainerHandle, ImageSpec
from sitepub.models.errors import CommandError, ProvisionError
from sitepub.services.commands import SupportsCommandRunner, run_command


logger = logging.getLogger(__name__)


def _current_user() -> str:
    return f"{os.getuid()}:{os.getgid()}"


@dataclass(slots=True)
class DockerProvisioner:
    """Build the generator image and manage the single container bound to the project root."""

    project_root: Path
    workdir: str = "/repo"
    docker_executable: str = "docker"
    runner: SupportsCommandRunner = run_command
    user: Callable[[], str] = field(default=_current_user)

    def provision(self, image: ImageSpec, handle: ContainerHandle | None = None) -> ContainerHandle:
        """Build the image, then create and start a container for it.

        ``handle`` is updated in place so that a container which was created but
        failed to start can still be removed by :meth:`teardown`.
        """

        handle = handle or ContainerHandle(image_tag=image.tag)
        missing = [path.name for path in image.manifest_paths() if not path.exists()]
        if missing:
            raise ProvisionError(f"Image manifest files missing from {image.context}: {', '.join(missing)}")

        logger.info("Building image %s from %s", image.tag, image.context)
        self._docker("build", "-t", image.tag, str(image.context), step="build image")

        created = self._docker(
            "create",
            "-v",
            f"{self.project_root}:{self.workdir}",
            "-u",
            self.user(),
            image.tag,
            step="create container",
        )
        container_id = created.stdout.strip()
        if not container_id:
            raise ProvisionError("docker create did not report a container id")
        handle.container_id = container_id

        self._docker("start", container_id, step="start container")
        handle.started = True
        logger.info("Started container %s", container_id[:12])
        return handle

    def teardown(self, handle: ContainerHandle) -> None:
        """Forcibly remove the container, logging rather than raising on failure."""

        if not handle.created:
            logger.debug("No container to remove for image %s", handle.image_tag)
            return

        container_id = handle.require_id()
        try:
            self.runner([self.docker_executable, "rm", "-f", container_id], cwd=self.project_root)
        except (CommandError, OSError) as exc:
            logger.warning("Failed to remove container %s: %s", container_id[:12], exc)
            return
        handle.started = False
        logger.info("Removed container %s", container_id[:12])

    @contextmanager
    def running(self, image: ImageSpec) -> Iterator[ContainerHandle]:
        """Yield a started container and remove it on every exit path."""

        handle = ContainerHandle(image_tag=image.tag)
        try:
            self.provision(image, handle)
            yield handle
        finally:
            self.teardown(handle)

    def exec(self, handle: ContainerHandle, script: str) -> subprocess.CompletedProcess[str]:
        """Run ``script`` with bash inside the container, returning output and exit code."""

        container_id = handle.require_id()
        logger.debug("Executing in %s: %s", container_id[:12], " ".join(script.split()))
        try:
            return self.runner(
                [self.docker_executable, "exec", container_id, "/bin/bash", "-c", script],
                cwd=self.project_root,
                check=False,
            )
        except OSError as exc:
            raise ProvisionError(f"Unable to execute {self.docker_executable}: {exc}") from exc

    def _docker(self, *args: str, step: str) -> subprocess.CompletedProcess[str]:
        try:
            return self.runner([self.docker_executable, *args], cwd=self.project_root)
        except CommandError as exc:
            raise ProvisionError(f"Failed to {step}: {exc}") from exc
        except OSError as exc:
            raise ProvisionError(f"Failed to {step}: unable to execute {self.docker_executable}: {exc}") from exc


__all__ = ["DockerProvisioner"]
