"""Command line interface for gallerysync."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from . import app
from .config import METADATA_BACKENDS, PipelineSettings
from .errors import GallerySyncError
from .models import RunSummary
from .utils.logging import configure_logging

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1


def _add_content(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--content", type=Path, help="Content root holding the JSON manifests")


def _add_processing(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--force", action="store_true", default=None, help="Regenerate every variant")
    parser.add_argument("--input", type=Path, help="Directory holding the original photos")
    parser.add_argument("--output", type=Path, help="Directory receiving the WebP variants")
    _add_content(parser)
    parser.add_argument("--workers", type=int, help="Photos processed concurrently within an album")
    parser.add_argument("--metadata-backend", choices=METADATA_BACKENDS, help="EXIF reader to use")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gallerysync",
        description="Build web variants and JSON manifests for a static photo gallery",
    )
    parser.add_argument("--config", type=Path, help="Settings file (default: ./gallerysync.json)")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="count", default=0, help="More output (-vv for debug)")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only print warnings and errors")

    commands = parser.add_subparsers(dest="command", metavar="<command>")
    commands.required = True

    _add_processing(commands.add_parser("import", help="Import albums and rebuild the indexes"))

    _add_content(commands.add_parser("rebuild-index", help="Rebuild albums.json and map.json"))

    init = commands.add_parser("init-locations", help="Add album-locations.json placeholders")
    init.add_argument("--input", type=Path, help="Directory holding the original photos")
    _add_content(init)

    _add_content(commands.add_parser("sync-covers", help="Copy covers from albums.json into album manifests"))

    showcase = commands.add_parser("showcase", help="Process the showcase image collection")
    showcase.add_argument("--force", action="store_true", default=None, help="Regenerate every variant")
    showcase.add_argument("--input", type=Path, help="Directory holding the showcase images")
    showcase.add_argument("--output", type=Path, help="Directory receiving the WebP variants")
    _add_content(showcase)

    hero = commands.add_parser("hero", help="Process the hero grid images named in site.json")
    hero.add_argument("--force", action="store_true", default=None, help="Regenerate every variant")
    hero.add_argument("--input", type=Path, help="Directory holding the original photos")
    hero.add_argument("--output", type=Path, help="Directory receiving the hero variants")
    _add_content(hero)

    reset = commands.add_parser("reset", help="Delete derived manifests and variants")
    _add_content(reset)
    reset.add_argument("--output", type=Path, help="Directory holding the WebP variants")
    reset.add_argument("--dry-run", action="store_true", help="Only report what would be deleted")
    reset.add_argument("--keep-variants", action="store_true", help="Do not delete the variant directory")
    return parser


def resolve_settings(args: argparse.Namespace) -> PipelineSettings:
    """Merge the settings file with command line flags (flags win)."""

    settings = app.load_settings(args.config)
    input_dir = getattr(args, "input", None)
    output_dir = getattr(args, "output", None)
    changes = {
        "content_dir": getattr(args, "content", None),
        "force": getattr(args, "force", None),
        "workers": getattr(args, "workers", None),
        "metadata_backend": getattr(args, "metadata_backend", None),
    }
    if args.command == "showcase":
        changes["showcase_input_dir"] = input_dir
    else:
        changes["input_dir"] = input_dir
    if args.command == "hero":
        changes["hero_output_dir"] = output_dir
    else:
        changes["output_dir"] = output_dir
    return settings.with_overrides(**changes)


def _dispatch(args: argparse.Namespace, settings: PipelineSettings) -> RunSummary:
    commands: dict[str, Callable[[PipelineSettings], RunSummary]] = {
        "import": app.run_import,
        "rebuild-index": app.rebuild_index,
        "init-locations": app.init_locations,
        "sync-covers": app.sync_covers,
        "showcase": app.run_showcase,
        "hero": app.run_hero,
    }
    if args.command == "reset":
        return app.reset_gallery(settings, dry_run=args.dry_run, keep_variants=args.keep_variants)
    return commands[args.command](settings)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    try:
        settings = resolve_settings(args)
        summary = _dispatch(args, settings)
    except GallerySyncError as exc:
        if not exc.fatal:
            raise
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FATAL

    for line in summary.render():
        print(line)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
