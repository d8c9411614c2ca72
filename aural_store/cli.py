from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .app import AuralApp
from .commands import cleanup_legacy as cmd_cleanup_legacy
from .commands import doctor as cmd_doctor
from .commands import reset as cmd_reset
from .commands import stats as cmd_stats
from .commands import top_tags as cmd_top_tags
from .commands import tracks as cmd_tracks
from .commands import users as cmd_users
from .config import Settings, find_config
from .enrichment import SORT_KEYS, SORT_ORDERS
from .storage import BlobStorage

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}


class StoreLogFormatter(logging.Formatter):
    """Colours warnings and errors when the target stream is a terminal."""

    def __init__(self, *, color: bool = False) -> None:
        super().__init__(LOG_FORMAT, datefmt=LOG_DATEFMT)
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno) if self.color else None
        return f"{color}{message}{C_RESET}" if color else message


class WarningCollector(logging.Handler):
    """Remembers warnings and errors for the end-of-run summary."""

    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.entries: list[tuple[str, str]] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            self.handleError(record)
            return
        self.entries.append((record.levelname.lower(), message))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect and maintain the Aural local data store")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level")
    parser.add_argument(
        "--warnings-log",
        type=Path,
        default=None,
        help="Also write warnings and errors to this file",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    stats_parser = subparsers.add_parser("stats", help="Show collection totals")
    stats_parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON to stdout")

    tracks_parser = subparsers.add_parser("tracks", help="List tracks as a given viewer sees them")
    tracks_parser.add_argument("--viewer", default=None, help="Viewer user id for liked/bookmarked flags")
    tracks_parser.add_argument("--sort", default="date", choices=sorted(SORT_KEYS), help="Sort key")
    tracks_parser.add_argument("--order", default="desc", choices=SORT_ORDERS, help="Sort order")
    tracks_parser.add_argument("--search", default=None, help="Only tracks matching this text")
    tracks_parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON to stdout")

    users_parser = subparsers.add_parser("users", help="List stored and inferred users")
    users_parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON to stdout")

    tags_parser = subparsers.add_parser("top-tags", help="Show the most used tags")
    tags_parser.add_argument("--limit", type=int, default=None, help="Recompute with this many entries")

    subparsers.add_parser("doctor", help="Check storage, flags and index consistency")

    cleanup_parser = subparsers.add_parser("cleanup-legacy", help="Delete the pre-migration blob")
    cleanup_parser.add_argument(
        "--force",
        action="store_true",
        help="Delete the legacy blob even if it was never migrated",
    )

    reset_parser = subparsers.add_parser("reset", help="Wipe stored content (demo data is not re-created)")
    reset_parser.add_argument("--keep-user", default=None, help="Keep this user's tracks and record")
    reset_parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    return parser


def configure_logging(level_name: str, warn_log_path: Path | None) -> WarningCollector:
    log_level = getattr(logging, level_name.upper(), logging.WARNING)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    console = logging.StreamHandler()
    console.setFormatter(StoreLogFormatter(color=console.stream.isatty()))
    root_logger.addHandler(console)

    collector = WarningCollector()
    root_logger.addHandler(collector)

    if warn_log_path is not None:
        file_handler = logging.FileHandler(warn_log_path, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(StoreLogFormatter())
        root_logger.addHandler(file_handler)
    return collector


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    config_path = find_config(args.config)
    settings = Settings.load(config_path) if config_path else Settings()
    collector = configure_logging(args.log_level, args.warnings_log)

    app: AuralApp | None = None
    uses_app = args.command in {"stats", "tracks", "users", "top-tags", "reset"}
    if uses_app:
        app = AuralApp.create(settings)
        app.bootstrap()

    try:
        match args.command:
            case "stats":
                cmd_stats.run(app.store, json_output=args.json)
            case "tracks":
                cmd_tracks.run(
                    app.store,
                    viewer_id=args.viewer,
                    sort_by=args.sort,
                    order=args.order,
                    query=args.search,
                    json_output=args.json,
                )
            case "users":
                cmd_users.run(app.store, json_output=args.json)
            case "top-tags":
                cmd_top_tags.run(app.store, limit=args.limit)
            case "doctor":
                report = cmd_doctor.run(settings)
                for line in report.checks:
                    print(line)
                if not report.ok:
                    raise SystemExit(1)
            case "cleanup-legacy":
                storage = BlobStorage(settings.storage.path)
                try:
                    cmd_cleanup_legacy.run(storage, settings, force=args.force)
                finally:
                    storage.close()
            case "reset":
                cmd_reset.run(app.store, keep_user=args.keep_user, yes=args.yes)
            case _:
                parser.error("Unknown command")
    finally:
        if app:
            app.close()
        if collector.entries:
            print(f"\n{LEVEL_COLORS[logging.WARNING]}Warnings/Errors summary:{C_RESET}")
            for level, message in collector.entries:
                print(f" - {level}: {message}")
            if args.warnings_log:
                print(f"\nFull warning log: {args.warnings_log}")


if __name__ == "__main__":  # pragma: no cover
    main()
