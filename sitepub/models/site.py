"""Data structures exchanged between the site build and test stages."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class BuildArtifact:
    """Generated website content produced by the site builder."""

    content_dir: Path
    cache_dir: Path
    skipped: bool = False

    @property
    def index_path(self) -> Path:
        return self.content_dir / "index.html"

    def exists(self) -> bool:
        return self.content_dir.is_dir()


@dataclass(slots=True)
class TestResult:
    """Outcome of the generator's test task."""

    __test__ = False

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def passed(self) -> bool:
        return self.returncode == 0
