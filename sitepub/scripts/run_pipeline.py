"""Build the website in Docker and publish the generated content to the publishing branch.

Subcommands mirror the pipeline stages so that CI jobs can run them separately:

- ``provision`` starts the generator container and prints its id.
- ``teardown`` removes a container left running by ``provision``.
- ``build`` and ``test`` run inside a container that is removed afterwards.
- ``publish`` commits the last build output to the publishing branch.
- ``publish-push`` commits and then pushes through a temporary remote.
- ``all`` runs provision, build, and test, removes the container, then publishes.
- ``clean`` deletes the build directory.

Settings come from ``website/publish.yml`` (or ``--settings``/``SITEPUB_SETTINGS``),
``SITEPUB_*`` environment variables, and the flags below, in increasing priority.
Exit status is 0 on success or when there is nothing to publish, 2 when the
generated content fails its assertions, and 1 for any other failure.
"""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
import sys
from typing import Callable

from sitepub.models.container import ContainerHandle
from sitepub.models.errors import SitePublishError
from sitepub.models.publisher import PublicationResult
from sitepub.services.config import PipelineSettings, load_settings
from sitepub.services.pipeline import WebsitePipeline, build_pipeline


LOGGER = logging.getLogger("sitepub.pipeline")
if not LOGGER.handlers:  # avoid dupes on re-import
    h = logging.StreamHandler(sys.stdout)
    h.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    LOGGER.addHandler(h)
    LOGGER.setLevel(logging.INFO)
    LOGGER.propagate = False

PipelineFactory = Callable[[PipelineSettings, argparse.Namespace], WebsitePipeline]


def _configure_logging() -> None:
    level_name = os.getenv("SITEPUB_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path(os.getenv("SITEPUB_PROJECT_ROOT", ".")),
        help="Repository root bound into the container (default from SITEPUB_PROJECT_ROOT or '.').",
    )
    parser.add_argument("--settings", type=Path, default=None, help="YAML settings file.")
    parser.add_argument("--source-dir", type=Path, default=None, help="Site source tree relative to the root.")
    parser.add_argument("--config", type=Path, default=None, help="Generator config file relative to the root.")
    parser.add_argument("--image-tag", default=None, help="Tag for the generator image.")
    parser.add_argument("--remote-url", default=None, help="URL of the repository receiving the push.")
    parser.add_argument("--branch", default=None, help="Publishing branch name.")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build and publish the project website.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("provision", "Build the image and start a container."),
        ("build", "Generate the website inside a container."),
        ("test", "Generate and test the website inside a container."),
        ("publish", "Commit the generated website to the publishing branch."),
        ("publish-push", "Commit and push the generated website."),
        ("all", "Provision, build, test, and publish."),
        ("clean", "Delete the build directory."),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        _add_common_arguments(subparser)
        if name in {"build", "test", "all"}:
            subparser.add_argument(
                "--force",
                action="store_true",
                help="Run the generator even when the build inputs are unchanged.",
            )
        if name == "all":
            subparser.add_argument("--push", action="store_true", help="Push the commit after publishing.")

    teardown = subparsers.add_parser("teardown", help="Remove a container started by 'provision'.")
    _add_common_arguments(teardown)
    teardown.add_argument("container_id", help="Identifier printed by 'provision'.")

    return parser.parse_args(argv)


def _load_settings(args: argparse.Namespace) -> PipelineSettings:
    overrides = {
        "image_tag": args.image_tag,
        "remote_url": args.remote_url,
        "publish_branch": args.branch,
    }
    return load_settings(args.project_root, settings_path=args.settings, overrides=overrides)


def _default_factory(settings: PipelineSettings, args: argparse.Namespace) -> WebsitePipeline:
    return build_pipeline(settings, source_dir=args.source_dir, config_path=args.config)


def _log_publication(publication: PublicationResult) -> None:
    if publication.committed:
        LOGGER.info("Publishing branch %s: %s (%s)", publication.branch, publication.outcome.value, publication.message)
    else:
        LOGGER.info("Publishing branch %s: nothing to publish", publication.branch)


def _dispatch(pipeline: WebsitePipeline, args: argparse.Namespace) -> None:
    command = args.command

    if command == "provision":
        handle = pipeline.provision()
        LOGGER.info("Container %s is running; remove it with 'teardown'", handle.require_id())
        print(handle.require_id())
    elif command == "teardown":
        pipeline.provisioner.teardown(
            ContainerHandle(image_tag=pipeline.settings.image_tag, container_id=args.container_id, started=True)
        )
    elif command == "build":
        artifact = pipeline.build(force=args.force)
        LOGGER.info("Website available in %s", artifact.content_dir)
    elif command == "test":
        pipeline.test(force=args.force)
        LOGGER.info("Website build and tests succeeded")
    elif command == "publish":
        _log_publication(pipeline.publish())
    elif command == "publish-push":
        _log_publication(pipeline.publish_push())
    elif command == "all":
        result = pipeline.run(push=args.push, force=args.force)
        assert result.publication is not None  # for mypy
        _log_publication(result.publication)
    elif command == "clean":
        if not pipeline.builder.clean():
            LOGGER.info("Nothing to clean")
    else:  # pragma: no cover - argparse restricts choices
        raise ValueError(f"Unknown command {command}")


def run(argv: list[str] | None = None, *, factory: PipelineFactory = _default_factory) -> int:
    _configure_logging()
    args = _parse_args(argv)

    try:
        settings = _load_settings(args)
    except (OSError, ValueError) as exc:
        LOGGER.error("Invalid settings: %s", exc)
        return 1

    pipeline = factory(settings, args)
    try:
        _dispatch(pipeline, args)
    except SitePublishError as exc:
        LOGGER.error("%s failed: %s", args.command, exc)
        return exc.exit_code
    return 0


def main() -> None:  # pragma: no cover - console script entry point
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover - script entry point
    raise SystemExit(run())
