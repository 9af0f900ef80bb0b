import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Tuple

from . import __version__
from .audit import ErrorLog
from .config import Config
from .env import load_env
from .logger import get_logger
from .records import StoreRecord, VolunteerRecord
from .schema import validate_request, validate_volunteer
from .services import LOCAL_FILTERS, RequestService, VolunteerService
from .task import TaskCatalog, build_default_catalog


def _load_fields(path_arg: str) -> Dict[str, Any]:
    input_path = Path(path_arg)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _tables(args: argparse.Namespace, config: Config):
    """Requests, volunteers and errors tables from a local SQLite file or Airtable."""
    names = (config.requests_table_name, config.volunteers_table_name, config.errors_table_name)
    if args.local:
        from .database import LocalTable
        return tuple(LocalTable(Path(args.local), name, filters=LOCAL_FILTERS) for name in names)
    from .airtable import AirtableTable
    try:
        return tuple(AirtableTable(config.airtable_api_key, config.airtable_base_id, name) for name in names)
    except ValueError as e:
        raise SystemExit(str(e))


def _geocoder(config: Config):
    from .geo import GoogleGeocoder
    try:
        return GoogleGeocoder(config.google_api_key)
    except ValueError as e:
        raise SystemExit(str(e))


def build_services(args: argparse.Namespace, config: Config, catalog: TaskCatalog) -> Tuple[RequestService, VolunteerService]:
    requests_table, volunteers_table, errors_table = _tables(args, config)
    geocoder = _geocoder(config) if getattr(args, "needs_geocoder", False) else None
    error_log = ErrorLog(errors_table)
    return (
        RequestService(requests_table, geocoder, error_log, config),
        VolunteerService(volunteers_table, geocoder, error_log, config, catalog),
    )


def cmd_tasks(args, config, catalog) -> None:
    for task in catalog.tasks():
        marker = " (catch-all)" if task == catalog.catch_all else ""
        print(f"{task.identifier}{marker}")
        for prefix in task.prefixes:
            print(f"  prefix: {prefix}")
        for name in task.predicate_names:
            print(f"  predicate: {name}")


def cmd_match(args, config, catalog) -> None:
    volunteer = VolunteerRecord(StoreRecord("local", _load_fields(args.volunteer)), config)
    tasks = catalog.tasks_for(volunteer)
    if not tasks:
        print("No matching tasks.")
        return
    for task in tasks:
        print(task.identifier)


def cmd_validate(args, config, catalog) -> None:
    if bool(args.request) == bool(args.volunteer):
        raise SystemExit("Pass exactly one of --request or --volunteer.")
    if args.request:
        errors = validate_request(_load_fields(args.request), catalog)
    else:
        errors = validate_volunteer(_load_fields(args.volunteer))
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)
    print("Valid")


async def _resolve_all(service, volunteers: bool) -> Tuple[int, int]:
    records = await (service.active_volunteers() if volunteers else service.requests())
    ok = failed = 0
    for record in records:
        if not isinstance(record.street_address, str):
            continue
        try:
            await service.resolve_and_update_coords(record)
            ok += 1
        except Exception as e:
            print(f"[error] {record.id} -> {e}")
            failed += 1
    return ok, failed


def cmd_resolve(args, config, catalog) -> None:
    request_service, volunteer_service = build_services(args, config, catalog)
    service = volunteer_service if args.volunteers else request_service
    ok, failed = asyncio.run(_resolve_all(service, args.volunteers))
    print(f"Done. resolved={ok} failed={failed}")


async def _split_all(service: RequestService) -> Tuple[int, int]:
    split = partial = 0
    for request in await service.requests():
        if len(request.task_labels) < 2:
            continue
        try:
            result = await service.split_multi_task_request(request)
        except Exception as e:
            print(f"[error] {request.id} -> {e}")
            continue
        split += 1
        if not result.complete:
            partial += 1
            print(f"[partial] {request.id} -> {len(result.failed)} clone(s) not created")
        else:
            print(f"[split] {request.id} -> {len(result.clones) + 1} requests")
    return split, partial


def cmd_split(args, config, catalog) -> None:
    request_service, _ = build_services(args, config, catalog)
    split, partial = asyncio.run(_split_all(request_service))
    print(f"Done. split={split} partial={partial}")


def cmd_loneliness(args, config, catalog) -> None:
    _, volunteer_service = build_services(args, config, catalog)
    for volunteer in asyncio.run(volunteer_service.find_volunteers_for_loneliness()):
        print(f"{volunteer.id}\t{volunteer.display_name}")


def cmd_task_counts(args, config, catalog) -> None:
    request_service, _ = build_services(args, config, catalog)
    counts = asyncio.run(request_service.get_volunteer_task_counts())
    if not counts:
        print("No open assigned requests.")
        return
    for volunteer_id, count in sorted(counts.items(), key=lambda item: -item[1]):
        print(f"{volunteer_id}\t{count}")


def main(argv=None):
    # Load .env if present (AIRTABLE_API_KEY, GOOGLE_API_KEY, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="mutualaid", description="Mutual aid dispatch helpers")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--local", help="Use a local SQLite store at this path instead of Airtable")

    subparsers = parser.add_subparsers(dest="command")
    tsk = subparsers.add_parser("tasks", help="List the task catalog")
    tsk.set_defaults(func=cmd_tasks)

    mat = subparsers.add_parser("match", help="List tasks a volunteer can fulfill")
    mat.add_argument("--volunteer", required=True, help="Path to volunteer fields JSON")
    mat.set_defaults(func=cmd_match)

    val = subparsers.add_parser("validate", help="Validate request or volunteer fields JSON")
    val.add_argument("--request", help="Path to request fields JSON")
    val.add_argument("--volunteer", help="Path to volunteer fields JSON")
    val.set_defaults(func=cmd_validate)

    res = subparsers.add_parser("resolve", help="Resolve coordinates for requests (or volunteers)")
    res.add_argument("--volunteers", action="store_true", help="Resolve active volunteers instead of requests")
    res.set_defaults(func=cmd_resolve, needs_geocoder=True)

    spl = subparsers.add_parser("split-requests", help="Split multi-task requests into one request per task")
    spl.set_defaults(func=cmd_split)

    lon = subparsers.add_parser("loneliness", help="Sample volunteers for loneliness outreach")
    lon.set_defaults(func=cmd_loneliness)

    cnt = subparsers.add_parser("task-counts", help="Open assigned requests per volunteer")
    cnt.set_defaults(func=cmd_task_counts)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    config = Config.from_env()
    get_logger().set_level(config.log_level)
    catalog = build_default_catalog()

    if hasattr(args, "func"):
        args.func(args, config, catalog)
        if args.command in ("resolve", "split-requests"):
            get_logger().log_metrics_summary()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
