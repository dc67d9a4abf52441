#!/usr/bin/env python3
"""Command-line interface for charge statements.

Usage:
    condo-charges statement --account 12345 --resident r-1 --unit 101B
    condo-charges statement --account 12345 --resident r-1 --unit 101B --view paid --format text
    condo-charges statement --account 12345 --resident r-1 --unit 101B --as-of 2024-06-15 --output charges.json
"""

import argparse
import asyncio
import logging
import sys
from datetime import date, datetime
from typing import Optional

from ..database import (
    create_async_engine,
    make_session_factory,
    get_database_url,
)
from .models import ChargeRequest, ChargeStatus, ChargeView
from .service import ChargeReconciliationService
from .sources import DatabaseChargeSource

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD date.

    Raises:
        ValueError: If the string is not a date in that format.
    """
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Unable to parse date: {value}. Expected format: YYYY-MM-DD") from None


async def run_statement_async(
    request: ChargeRequest,
    as_of: Optional[date] = None,
    output_file: Optional[str] = None,
    output_format: str = "json",
    include_details: bool = True,
) -> int:
    """Compute and print a statement.

    Returns:
        Exit code: 0, or 1 when the statement lists overdue charges.
    """
    engine = create_async_engine(database_url=get_database_url())
    source = DatabaseChargeSource(make_session_factory(engine))
    clock = (lambda: as_of) if as_of else date.today

    try:
        service = ChargeReconciliationService(source, clock=clock)
        statement = await service.reconcile(request)

        output = service.generate_report(
            statement,
            format=output_format,
            include_details=include_details,
        )

        if output_file:
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(output)
            logger.info(f"Statement written to {output_file}")
        else:
            print(output)

        overdue = [c for c in statement.charges if c.status == ChargeStatus.OVERDUE]
        if overdue:
            logger.warning(f"Unit {request.unit} has {len(overdue)} overdue charges")
            return 1
        return 0

    finally:
        await engine.dispose()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="condo-charges",
        description="Monthly condominium charge statements.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    statement_parser = subparsers.add_parser(
        "statement",
        help="Print the charge statement of a unit",
    )
    statement_parser.add_argument("--account", "-a", required=True, help="Condominium account ID")
    statement_parser.add_argument("--resident", "-r", required=True, help="Resident ID")
    statement_parser.add_argument("--unit", "-u", required=True, help="Unit identifier")
    statement_parser.add_argument(
        "--view", "-v",
        choices=[v.value for v in ChargeView],
        default=ChargeView.PENDING.value,
        help="Charges to list (default: pending)",
    )
    statement_parser.add_argument("--year", "-y", type=int, help="Year to project (default: current year)")
    statement_parser.add_argument("--as-of", help="Date to classify against, YYYY-MM-DD (default: today)")
    statement_parser.add_argument(
        "--format", "-f",
        choices=["json", "csv", "text"],
        default="json",
        help="Output format (default: json)",
    )
    statement_parser.add_argument("--output", "-o", help="Output file path (default: stdout)")
    statement_parser.add_argument(
        "--summary-only",
        action="store_true",
        help="Only include totals, not the charges (JSON only)",
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Optional list of command-line arguments (for testing).

    Returns:
        Exit code.
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 2

    if parsed_args.command == "statement":
        as_of = None
        if parsed_args.as_of:
            try:
                as_of = parse_date(parsed_args.as_of)
            except ValueError as e:
                logger.error(str(e))
                return 2

        request = ChargeRequest(
            account_id=parsed_args.account,
            resident_id=parsed_args.resident,
            unit=parsed_args.unit,
            year=parsed_args.year,
            view=ChargeView(parsed_args.view),
        )
        return asyncio.run(run_statement_async(
            request,
            as_of=as_of,
            output_file=parsed_args.output,
            output_format=parsed_args.format,
            include_details=not parsed_args.summary_only,
        ))

    return 0


if __name__ == "__main__":
    sys.exit(main())
