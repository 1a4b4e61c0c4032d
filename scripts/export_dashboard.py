"""
Export the filtered dashboard collections to a CSV file from CLI.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import date
from pathlib import Path

from app.api.dependencies import get_record_store
from app.config import get_dashboard_settings
from app.services.dashboard_session import DashboardSession
from app.services.export_service import ExportUnavailableError
from app.services.filter_engine import ALL_DEPARTMENTS, ALL_REGIONS, FilterCriteria


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export filtered dashboard data as CSV.")
    parser.add_argument("--date-from", dest="date_from", type=_parse_date, default=None)
    parser.add_argument("--date-to", dest="date_to", type=_parse_date, default=None)
    parser.add_argument(
        "--region",
        dest="regions",
        action="append",
        default=None,
        help=f'Repeatable. Defaults to "{ALL_REGIONS}".',
    )
    parser.add_argument(
        "--department",
        dest="departments",
        action="append",
        default=None,
        help=f'Repeatable. Defaults to "{ALL_DEPARTMENTS}".',
    )
    parser.add_argument(
        "--output",
        dest="output",
        default=None,
        help="Output path. Defaults to CFO_Dashboard_Export_<today>.csv in the working directory.",
    )
    return parser


async def _export(criteria: FilterCriteria) -> DashboardSession:
    session = DashboardSession(store=get_record_store())
    await session.refresh()
    session.set_criteria(criteria, debounce=False)
    await session.close()
    return session


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s [%(name)s] %(message)s")

    default = FilterCriteria.default(window_months=get_dashboard_settings().default_window_months)
    criteria = FilterCriteria(
        date_from=args.date_from or default.date_from,
        date_to=args.date_to or default.date_to,
        selected_regions=tuple(args.regions or (ALL_REGIONS,)),
        selected_departments=tuple(args.departments or (ALL_DEPARTMENTS,)),
    )
    session = asyncio.run(_export(criteria))

    summary = {
        "financial_records": len(session.view.financial),
        "process_records": len(session.view.process),
        "errors": session.fetch_errors,
        "output": None,
    }
    try:
        artifact = session.export()
    except ExportUnavailableError as exc:
        summary["error"] = str(exc)
        print(json.dumps(summary, indent=2))
        return 1

    output = Path(args.output or artifact.filename)
    output.write_bytes(artifact.content_bytes)
    summary["output"] = str(output)
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
