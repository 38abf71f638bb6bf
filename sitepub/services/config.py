"""Resolve pipeline settings from defaults, a YAML file, the environment, and CLI flags."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml


logger = logging.getLogger(__name__)

DEFAULT_REMOTE_URL = "https://gitbox.apache.org/repos/asf/beam.git"
DEFAULT_SETTINGS_FILE = Path("website/publish.yml")
SETTINGS_ENV = "SITEPUB_SETTINGS"

_ENV_OVERRIDES: Mapping[str, str] = {
    "SITEPUB_IMAGE_TAG": "image_tag",
    "SITEPUB_REMOTE_URL": "remote_url",
    "SITEPUB_BRANCH": "publish_branch",
    "SITEPUB_DOCKER": "docker_executable",
    "SITEPUB_GIT": "git_executable",
}

_PATH_FIELDS = {"project_root", "website_dir", "source_dir", "config_path", "build_dir", "repo_content_dir"}


@dataclass(slots=True, frozen=True)
class PipelineSettings:
    """Locations and names used by every pipeline stage.

    Directory settings other than ``project_root`` are relative to the project root.
    """

    project_root: Path
    website_dir: Path = Path("website")
    source_dir: Path = Path("website/src")
    config_path: Path = Path("website/_config.yml")
    build_dir: Path = Path("build/website")
    content_dirname: str = "generated-content"
    cache_dirname: str = ".sass-cache"
    repo_content_dir: Path = Path("website/generated-content")
    image_tag: str = "beam-website"
    docker_workdir: str = "/repo"
    publish_branch: str = "asf-site"
    tracking_remote: str = "origin"
    remote_name: str = "website-publish"
    remote_url: str = DEFAULT_REMOTE_URL
    excluded_paths: tuple[str, ...] = field(
        default=("documentation/sdks/javadoc", "documentation/sdks/pydoc")
    )
    docker_executable: str = "docker"
    git_executable: str = "git"

    def resolve(self, relative: Path) -> Path:
        """Return ``relative`` anchored at the project root."""

        return relative if relative.is_absolute() else self.project_root / relative

    @property
    def build_path(self) -> Path:
        return self.resolve(self.build_dir)

    @property
    def build_content_path(self) -> Path:
        return self.build_path / self.content_dirname

    @property
    def cache_path(self) -> Path:
        return self.build_path / self.cache_dirname

    @property
    def website_path(self) -> Path:
        return self.resolve(self.website_dir)

    def container_path(self, path: Path) -> str:
        """Translate a host path under the project root to its path inside the container."""

        absolute = self.resolve(path)
        try:
            relative = absolute.relative_to(self.project_root)
        except ValueError as exc:
            raise ValueError(f"Path '{absolute}' is outside the project root '{self.project_root}'") from exc
        base = self.docker_workdir.rstrip("/")
        posix = relative.as_posix()
        return base if posix == "." else f"{base}/{posix}"

    def with_overrides(self, overrides: Mapping[str, Any]) -> "PipelineSettings":
        """Return a copy with non-empty ``overrides`` applied."""

        values = {key: _coerce(key, value) for key, value in overrides.items() if value is not None}
        return replace(self, **values) if values else self


def _coerce(key: str, value: Any) -> Any:
    if key in _PATH_FIELDS:
        return Path(value)
    if key == "excluded_paths":
        if isinstance(value, str):
            return (value,)
        return tuple(str(item) for item in value)
    return value


def load_settings_file(path: Path) -> dict[str, Any]:
    """Parse a YAML settings file into a dictionary of known setting names."""

    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Settings file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Settings file '{path}' must contain a mapping")

    known = {item.name for item in fields(PipelineSettings)} - {"project_root"}
    values = {str(key).replace("-", "_"): value for key, value in payload.items()}
    unknown = sorted(key for key in values if key not in known)
    if unknown:
        raise ValueError(f"Settings file '{path}' has unknown keys: {', '.join(unknown)}")

    for key, value in values.items():
        if value is not None and not _has_valid_type(key, value):
            raise ValueError(f"Settings file '{path}' has an invalid value for {key}: {value!r}")
    return values


def _has_valid_type(key: str, value: Any) -> bool:
    if key == "excluded_paths":
        return isinstance(value, str) or (
            isinstance(value, list) and all(isinstance(item, str) for item in value)
        )
    return isinstance(value, str)


def load_settings(
    project_root: Path,
    *,
    settings_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> PipelineSettings:
    """Build settings from defaults, then the settings file, the environment, and ``overrides``."""

    env = os.environ if environ is None else environ
    root = project_root.resolve()
    settings = PipelineSettings(project_root=root)

    explicit = settings_path or (Path(env[SETTINGS_ENV]) if env.get(SETTINGS_ENV) else None)
    candidate = explicit or root / DEFAULT_SETTINGS_FILE
    if candidate.exists():
        logger.debug("Loading settings from %s", candidate)
        settings = settings.with_overrides(load_settings_file(candidate))
    elif explicit is not None:
        raise FileNotFoundError(f"Settings file '{candidate}' does not exist")

    settings = settings.with_overrides({name: env.get(key) or None for key, name in _ENV_OVERRIDES.items()})
    return settings.with_overrides(overrides or {})


__all__ = ["DEFAULT_REMOTE_URL", "PipelineSettings", "load_settings", "load_settings_file"]
