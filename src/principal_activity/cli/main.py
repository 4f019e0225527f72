"""Main CLI entry point."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from principal_activity.errors import (
    Cancelled,
    PartialRollupFailure,
    PrincipalNotFound,
    SourceUnavailable,
)

# Exit codes: "no activity" is a normal result (0); failures each get their own code
EXIT_NOT_FOUND = 2
EXIT_CANCELLED = 3
EXIT_SOURCE_UNAVAILABLE = 4
EXIT_PARTIAL_ROLLUP = 5


def _add_source_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Path to settings YAML",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to SQLite record store (overrides settings)",
    )
    parser.add_argument(
        "--source",
        choices=["sqlite", "rest"],
        default=None,
        help="Record store to read from (overrides settings)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write JSON to file (default: stdout)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="principal-activity",
        description="Principal relationship activity and engagement analytics",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # import
    import_parser = subparsers.add_parser("import", help="Load a JSON snapshot of records into SQLite")
    import_parser.add_argument("snapshot", type=Path, help="Path to snapshot JSON")
    import_parser.add_argument(
        "--db",
        type=Path,
        default=Path("principal_activity.db"),
        help="Path to SQLite database",
    )

    # principals
    principals_parser = subparsers.add_parser("principals", help="List principal ids")
    _add_source_args(principals_parser)

    # summary
    summary_parser = subparsers.add_parser("summary", help="Activity summary for one principal")
    summary_parser.add_argument("principal_id", help="Principal identifier")
    _add_source_args(summary_parser)
    summary_parser.add_argument(
        "--with-timeline",
        action="store_true",
        help="Include the timeline in the output",
    )

    # timeline
    timeline_parser = subparsers.add_parser("timeline", help="Chronological timeline for one principal")
    timeline_parser.add_argument("principal_id", help="Principal identifier")
    _add_source_args(timeline_parser)

    # rollup
    rollup_parser = subparsers.add_parser("rollup", help="Population rollup across principals")
    _add_source_args(rollup_parser)
    rollup_parser.add_argument(
        "--status",
        action="append",
        default=[],
        choices=["NO_ACTIVITY", "ACTIVE", "COOLING", "DORMANT", "AT_RISK"],
        help="Only include principals with this status (repeatable)",
    )
    rollup_parser.add_argument("--min-score", type=int, default=None, help="Minimum engagement score")
    rollup_parser.add_argument("--max-score", type=int, default=None, help="Maximum engagement score")
    rollup_parser.add_argument("--search", type=str, default=None, help="Principal name contains")
    rollup_parser.add_argument("--top", type=int, default=None, help="Top-N principals to rank")
    rollup_parser.add_argument(
        "--tolerate-failures",
        action="store_true",
        help="Exclude principals that fail to aggregate instead of aborting",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse args and dispatch to subcommands."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "import":
            _run_import(args)
        elif args.command == "principals":
            _emit(args, asyncio.run(_principals(args)))
        elif args.command == "summary":
            _emit(args, asyncio.run(_summary(args)))
        elif args.command == "timeline":
            _emit(args, asyncio.run(_timeline(args)))
        elif args.command == "rollup":
            _emit(args, asyncio.run(_rollup(args)))
        else:
            parser.print_help()
    except PrincipalNotFound as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(EXIT_NOT_FOUND)
    except Cancelled as e:
        print(f"Could not compute result: {e}", file=sys.stderr)
        raise SystemExit(EXIT_CANCELLED)
    except SourceUnavailable as e:
        print(f"Could not compute result: {e}", file=sys.stderr)
        raise SystemExit(EXIT_SOURCE_UNAVAILABLE)
    except PartialRollupFailure as e:
        _emit(args, e.rollup.model_dump(mode="json"))
        print(str(e), file=sys.stderr)
        raise SystemExit(EXIT_PARTIAL_ROLLUP)


def _load_settings(args: argparse.Namespace):
    from principal_activity.models.settings import EngineSettings

    settings = (
        EngineSettings.from_yaml(args.settings)
        if args.settings
        else EngineSettings().with_env_overrides()
    )
    update: dict = {}
    if args.db is not None:
        update["db_path"] = args.db
    if args.source is not None:
        update["source"] = args.source
    return settings.model_copy(update=update) if update else settings


def _service(args: argparse.Namespace):
    from principal_activity.service import ActivityService

    return ActivityService.from_settings(_load_settings(args))


def _emit(args: argparse.Namespace, data) -> None:
    output = json.dumps(data, indent=2, default=str)
    if getattr(args, "output", None):
        args.output.write_text(output, encoding="utf-8")
        print(f"Wrote {args.command} to {args.output}")
    else:
        print(output)


def _run_import(args: argparse.Namespace) -> None:
    """Run import command."""
    from principal_activity.sources.sqlite_source import SqliteSourceReader

    reader = SqliteSourceReader(args.db)
    counts = reader.import_snapshot(args.snapshot)
    total = sum(counts.values())
    print(f"Imported {total} records into {args.db}: " + ", ".join(f"{k}={v}" for k, v in counts.items()))


async def _principals(args: argparse.Namespace) -> list[str]:
    async with _service(args) as service:
        return await service.list_principal_ids()


async def _summary(args: argparse.Namespace) -> dict:
    async with _service(args) as service:
        if args.with_timeline:
            summary, timeline = await service.get_principal_dashboard(args.principal_id)
            return {
                "summary": summary.model_dump(mode="json"),
                "timeline": timeline.model_dump(mode="json"),
            }
        summary = await service.get_principal_summary(args.principal_id)
        return summary.model_dump(mode="json")


async def _timeline(args: argparse.Namespace) -> dict:
    async with _service(args) as service:
        timeline = await service.get_timeline(args.principal_id)
        return timeline.model_dump(mode="json")


async def _rollup(args: argparse.Namespace) -> dict:
    from principal_activity.models.rollup import RollupFilter

    criteria = RollupFilter(
        activity_statuses=args.status,
        min_engagement_score=args.min_score,
        max_engagement_score=args.max_score,
        search=args.search,
    )
    async with _service(args) as service:
        rollup = await service.get_population_rollup(
            criteria,
            top_n=args.top,
            tolerate_partial_failures=True if args.tolerate_failures else None,
        )
        return rollup.model_dump(mode="json")


if __name__ == "__main__":
    main()
