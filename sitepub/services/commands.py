"""Subprocess execution shared by the container, site, and git stages."""

from __future__ import annotations

import logging
from pathlib import Path
import subprocess
from typing import Protocol, Sequence

from sitepub.models.errors import CommandError


logger = logging.getLogger(__name__)


class SupportsCommandRunner(Protocol):
    """Callable able to execute an external command and capture its output."""

    def __call__(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run ``args`` and return the completed process."""


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute ``args`` capturing stdout and stderr as text.

    When ``check`` is true a non-zero exit raises :class:`CommandError` carrying the
    captured output, otherwise the completed process is returned unchanged.
    """

    logger.debug("Running %s (cwd=%s)", " ".join(args), cwd or ".")
    result = subprocess.run(
        list(args),
        cwd=cwd,
        text=True,
        check=False,
        capture_output=True,
    )
    if check and result.returncode != 0:
        raise CommandError(args, result.returncode, result.stdout, result.stderr)
    return result


def output_tail(result: subprocess.CompletedProcess[str], lines: int = 20) -> str:
    """Return the last ``lines`` lines of combined output for error messages."""

    combined = "\n".join(part for part in (result.stdout, result.stderr) if part)
    return "\n".join(combined.strip().splitlines()[-lines:])


__all__ = ["SupportsCommandRunner", "output_tail", "run_command"]
