"""Command line front end for scad_library_sync.

Wraps ``WorkspaceService`` so a workspace can be initialised, refreshed
and inspected without an editor::

    scad-library-sync init ~/scad-libs
    scad-library-sync update
    scad-library-sync check ~/scad-libs/bit/lib/bit_functions_lib.4.scad

Progress lines go to stdout as they are produced; diagnostics go to
stderr through ``logging``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import load_hierarchical_config
from .config_schema import build_config
from .errors import SyncError
from .logger import setup_logging
from .sync.models import SyncOutcome
from .sync.reporter import format_sync_report, report_to_json
from .workspace import WorkspaceService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1


def build_service(config: Config) -> WorkspaceService:
    """Create the service used by every command."""
    return WorkspaceService(config)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scad-library-sync",
        description="Keep a local workspace of OpenSCAD library profiles in sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Populate a new workspace and remember it
  scad-library-sync init ~/scad-libs

  # Refresh the remembered workspace
  scad-library-sync update

  # Is a file safe to save over?
  scad-library-sync check ~/scad-libs/bit/lib/bit_functions_lib.4.scad

  # Place shared library files beside a loose design
  scad-library-sync copy-libs bit ~/Desktop/my-insert

  # Route remote traffic through a proxy (no URL clears it)
  scad-library-sync set-proxy http://proxy.local:3128
        """,
    )
    parser.add_argument(
        "--config",
        action="append",
        type=Path,
        metavar="FILE",
        help="Extra YAML config file (repeatable, highest precedence)",
    )
    parser.add_argument(
        "--proxy",
        help="Proxy URL for this run (takes precedence over SCAD_SYNC_PROXY and config files)",
    )
    parser.add_argument(
        "--cache-dir",
        help="Shared-file cache directory (takes precedence over SCAD_SYNC_CACHE_DIR)",
    )
    parser.add_argument(
        "--prefs",
        help="Preferences file (takes precedence over SCAD_SYNC_PREFS)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON instead of text",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--log-file",
        help="Also write log records to this file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"scad-library-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Populate a workspace and remember it")
    p_init.add_argument("directory", type=Path)

    p_update = sub.add_parser("update", help="Refresh the workspace")
    p_update.add_argument(
        "--directory",
        type=Path,
        help="Workspace to refresh (default: the remembered one)",
    )

    sub.add_parser("status", help="Show the workspace and manifest state")

    p_check = sub.add_parser("check", help="Report the provenance of a file")
    p_check.add_argument("path", type=Path)

    sub.add_parser("tree", help="List tracked designs grouped by publisher")

    p_copy = sub.add_parser(
        "copy-libs", help="Copy a profile's shared library files into a directory"
    )
    p_copy.add_argument("profile")
    p_copy.add_argument("directory", type=Path)

    p_proxy = sub.add_parser("set-proxy", help="Set or clear the stored proxy")
    p_proxy.add_argument("url", nargs="?", default="")

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _emit(args: argparse.Namespace, text: str, payload: dict) -> None:
    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        print(text)


def _progress_printer(args: argparse.Namespace):
    if args.json:
        return lambda message: None
    return lambda message: print(message, flush=True)


def _outcome_exit(args: argparse.Namespace, outcome: SyncOutcome) -> int:
    if args.json:
        print(json.dumps(report_to_json(outcome), indent=2))
    elif not outcome.ok:
        print(format_sync_report(outcome), file=sys.stderr)
    else:
        print()
        print(format_sync_report(outcome))
    if not outcome.ok or outcome.has_failures:
        return EXIT_ERROR
    return EXIT_OK


async def _cmd_init(service: WorkspaceService, args: argparse.Namespace) -> int:
    root = args.directory.expanduser().resolve()
    outcome = await service.init(root, _progress_printer(args))
    return _outcome_exit(args, outcome)


async def _cmd_update(service: WorkspaceService, args: argparse.Namespace) -> int:
    root = args.directory.expanduser().resolve() if args.directory else None
    outcome = await service.update(root, _progress_printer(args))
    return _outcome_exit(args, outcome)


async def _cmd_status(service: WorkspaceService, args: argparse.Namespace) -> int:
    root = service.workspace_root()
    profiles = []
    for profile in service.registry:
        manifest = service.store.load(Path(root) / profile.id) if root else None
        profiles.append(
            {
                "id": profile.id,
                "name": profile.name,
                "repo": f"{profile.repo}@{profile.branch}",
                "last_updated": manifest["lastUpdated"] if manifest else None,
                "tracked_files": len(manifest["files"]) if manifest else 0,
            }
        )

    lines = [f"Workspace: {root or '(not set)'}"]
    for entry in profiles:
        lines.append(
            f"  {entry['id']:<8} {entry['name']} [{entry['repo']}] "
            f"{entry['tracked_files']} tracked, "
            f"last updated {entry['last_updated'] or 'never'}"
        )
    _emit(args, "\n".join(lines), {"workspace": root, "profiles": profiles})
    return EXIT_OK


async def _cmd_check(service: WorkspaceService, args: argparse.Namespace) -> int:
    path = args.path.expanduser().resolve()
    check = service.check_save(path)
    detected = None
    if path.is_file():
        detected = service.registry.detect_file(path)

    payload = {
        "path": str(path),
        "inside_workspace": not check.needs_shared_files,
        "repo_owned": check.repo_profile,
        "save_allowed": check.allowed,
        "detected_profile": detected,
    }
    lines = [str(path)]
    lines.append(
        "  inside workspace" if payload["inside_workspace"] else "  outside workspace"
    )
    if check.repo_profile:
        lines.append(
            f"  tracked by profile '{check.repo_profile}' (read-only, save a copy instead)"
        )
    else:
        lines.append("  user file")
    if detected:
        lines.append(f"  includes library of profile '{detected}'")
    _emit(args, "\n".join(lines), payload)
    return EXIT_OK


async def _cmd_tree(service: WorkspaceService, args: argparse.Namespace) -> int:
    tree = service.library_tree()
    lines = []
    for profile_id, entry in tree.items():
        lines.append(f"{entry['name']} ({profile_id})")
        for publisher, designs in sorted(entry["publishers"].items()):
            lines.append(f"  {publisher}")
            for design in designs:
                lines.append(f"    {design['name']}")
    if not lines:
        lines.append("No tracked designs.")
    _emit(args, "\n".join(lines), tree)
    return EXIT_OK


async def _cmd_copy_libs(
    service: WorkspaceService, args: argparse.Namespace
) -> int:
    target = args.directory.expanduser().resolve()
    copied = await service.copy_shared_files_into(args.profile, target)
    text = (
        "\n".join(f"Copied {p}" for p in copied)
        if copied
        else f"Library files already present in {target}"
    )
    _emit(args, text, {"copied": [str(p) for p in copied]})
    return EXIT_OK


async def _cmd_set_proxy(
    service: WorkspaceService, args: argparse.Namespace
) -> int:
    service.set_proxy(args.url or None)
    text = f"Proxy set to {args.url}" if args.url else "Proxy cleared"
    _emit(args, text, {"proxy": args.url or None})
    return EXIT_OK


_COMMANDS = {
    "init": _cmd_init,
    "update": _cmd_update,
    "status": _cmd_status,
    "check": _cmd_check,
    "tree": _cmd_tree,
    "copy-libs": _cmd_copy_libs,
    "set-proxy": _cmd_set_proxy,
}


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run one command and return its exit code."""
    args = _build_parser().parse_args(argv)

    load_dotenv()

    try:
        unified = build_config(load_hierarchical_config(args.config))
        config = load_config(
            proxy=args.proxy,
            cache_dir=args.cache_dir,
            preferences_file=args.prefs,
            debug=args.debug,
            unified=unified,
        )
    except (ValueError, OSError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(
        mode="cli",
        debug=config.debug,
        log_file=args.log_file or unified.logging.file,
        level=unified.logging.level,
    )
    logger.debug("Running command %s", args.command)

    try:
        service = build_service(config)
        return asyncio.run(_COMMANDS[args.command](service, args))
    except (SyncError, ValueError, OSError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
