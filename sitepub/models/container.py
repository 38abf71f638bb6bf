"""Data structures describing the site generator container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sitepub.models.errors import ProvisionError


@dataclass(slots=True, frozen=True)
class ImageSpec:
    """Inputs required to build the site generator image."""

    tag: str
    context: Path
    manifest_files: tuple[str, ...] = ("Gemfile", "Gemfile.lock")

    def manifest_paths(self) -> list[Path]:
        """Return the manifest files relative to the build context."""

        return [self.context / name for name in self.manifest_files]


@dataclass(slots=True)
class ContainerHandle:
    """Reference to the single container owned by a pipeline run.

    The identifier is filled in once ``docker create`` succeeds, so stages that
    receive the handle early resolve the id only when they execute a command.
    """

    image_tag: str
    container_id: str | None = None
    started: bool = False

    @property
    def created(self) -> bool:
        return bool(self.container_id)

    def require_id(self) -> str:
        """Return the container identifier or raise if it was never created."""

        if not self.container_id:
            raise ProvisionError(f"Container for image '{self.image_tag}' has not been created")
        return self.container_id
