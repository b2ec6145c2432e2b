#!/usr/bin/env python3
"""
Print payee settlement statements for a period.

Usage:
    python3 scripts/settlement_report.py --start 2024-01-01 --end 2024-02-01
    python3 scripts/settlement_report.py --start 2024-01-01 --end 2024-02-01 \\
        --profile-id <uuid> --json
    python3 scripts/settlement_report.py --start 2024-01-01 --end 2024-02-01 \\
        --manager-id <uuid>

The period is [start, end): entries created at exactly --end belong to the
next period.  Dates are interpreted as midnight UTC.  --manager-id prints the
team view: statements of the agents on that manager's sales.
"""

import argparse
import json
import os
import sys
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

W = 72


def _parse_day(value: str) -> datetime:
    return datetime.combine(date.fromisoformat(value), datetime.min.time(), tzinfo=UTC)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Settlement statements per payee")
    p.add_argument("--start", type=_parse_day, required=True, help="First day (inclusive)")
    p.add_argument("--end", type=_parse_day, required=True, help="Last day (exclusive)")
    who = p.add_mutually_exclusive_group()
    who.add_argument("--profile-id", dest="profile_ids", action="append", type=UUID)
    who.add_argument("--manager-id", type=UUID, help="Team statements for this manager")
    p.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    p.add_argument("--db-url", default=None, help="Database URL")
    return p.parse_args(argv)


def statement_to_dict(statement) -> dict:
    return {
        "profile_id": str(statement.profile_id),
        "currency": statement.currency,
        "period_start": statement.period_start.isoformat(),
        "period_end": statement.period_end.isoformat(),
        "gross_by_role": {
            role.value: str(amount) for role, amount in statement.gross_by_role.items()
        },
        "gross_amount": str(statement.gross_amount),
        "withholding_amount": str(statement.withholding_amount),
        "net_amount": str(statement.net_amount),
        "entry_count": statement.entry_count,
        "sale_count": statement.sale_count,
    }


def format_statement(statement) -> list[str]:
    lines = [
        "-" * W,
        f"  Payee {statement.profile_id}  ({statement.currency})",
        f"  {statement.entry_count} entries over {statement.sale_count} sales",
    ]
    for role, amount in sorted(statement.gross_by_role.items(), key=lambda kv: kv[0].value):
        lines.append(f"    {role.value:<24}{amount:>20}")
    lines.append(f"    {'GROSS':<24}{statement.gross_amount:>20}")
    lines.append(f"    {'WITHHOLDING':<24}{statement.withholding_amount:>20}")
    lines.append(f"    {'NET PAYABLE':<24}{statement.net_amount:>20}")
    return lines


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from commission_config import get_active_config
    from commission_kernel.db.engine import get_session, init_engine_from_url
    from commission_kernel.selectors.settlement_selector import SettlementAggregator

    db_url = args.db_url or os.environ.get("DATABASE_URL") or get_active_config().database_url
    if not db_url:
        print("  ERROR: no database URL (use --db-url or DATABASE_URL)", file=sys.stderr)
        return 1

    init_engine_from_url(db_url)
    session = get_session()
    try:
        aggregator = SettlementAggregator(session)
        if args.manager_id is not None:
            statements = aggregator.team_statements(args.manager_id, args.start, args.end)
        else:
            statements = aggregator.build_statements(
                args.start, args.end, profile_ids=args.profile_ids
            )
    except ValueError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        session.close()

    if args.json:
        print(json.dumps([statement_to_dict(s) for s in statements], indent=2))
        return 0

    print("=" * W)
    print(f"  Settlement {args.start.date()} .. {args.end.date()}")
    print("=" * W)
    for statement in statements:
        print("\n".join(format_statement(statement)))

    totals: dict[str, Decimal] = {}
    for statement in statements:
        totals[statement.currency] = totals.get(statement.currency, Decimal("0")) + statement.net_amount
    print("=" * W)
    for currency, amount in sorted(totals.items()):
        print(f"  Total net payable {currency}: {amount}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
