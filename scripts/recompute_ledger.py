#!/usr/bin/env python3
"""
Recompute the commission ledger of one or more sales.

The admin "recompute ledger" action: regenerates each sale's entries from
its current amounts and hierarchy, then prints the breakdown.  A cancelled
sale is retracted instead (its entries are removed).

Usage:
    python3 scripts/recompute_ledger.py --sale-id <uuid> [--sale-id <uuid> ...]
    python3 scripts/recompute_ledger.py --sale-id <uuid> --no-regenerate
    python3 scripts/recompute_ledger.py --sale-id <uuid> --no-hq --replay

Database URL resolution: --db-url, then DATABASE_URL, then the settings file.
Exit status is 1 if any sale failed.
"""

import argparse
import os
import sys
from pathlib import Path
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

W = 72


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Recompute commission ledger entries for sales")
    p.add_argument("--sale-id", dest="sale_ids", action="append", type=UUID, required=True)
    p.add_argument(
        "--no-regenerate",
        dest="regenerate",
        action="store_false",
        help="Only insert missing entries; leave existing ones untouched",
    )
    p.add_argument("--no-hq", dest="include_hq", action="store_false", default=None)
    p.add_argument("--replay", action="store_true", help="Verify the result by audit replay")
    p.add_argument("--config", type=Path, default=None, help="Settings YAML file")
    p.add_argument("--db-url", default=None, help="Database URL")
    return p.parse_args(argv)


def _print_result(result) -> None:
    b = result.breakdown
    print(f"  sale {result.sale_id}")
    print(f"    net revenue          {b.net_revenue:>20}")
    print(f"    branch commission    {b.branch_commission:>20}")
    print(f"    sales commission     {b.sales_commission:>20}")
    print(f"    override commission  {b.override_commission:>20}")
    print(
        f"    entries deleted {result.entries_deleted}, created {result.entries_created}"
    )


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from commission_config import get_active_config
    from commission_kernel.db.engine import get_session, init_engine_from_url
    from commission_kernel.domain.sale_lifecycle import SaleStatus
    from commission_kernel.exceptions import CommissionKernelError
    from commission_kernel.models.affiliate import AffiliateSale
    from commission_kernel.selectors.ledger_selector import LedgerSelector
    from commission_kernel.services.ledger_synchronizer import LedgerSynchronizer

    settings = get_active_config(args.config)
    db_url = args.db_url or os.environ.get("DATABASE_URL") or settings.database_url
    if not db_url:
        print("  ERROR: no database URL (use --db-url or DATABASE_URL)", file=sys.stderr)
        return 1

    init_engine_from_url(db_url)
    session = get_session()
    synchronizer = LedgerSynchronizer(session, settings)
    failures = 0

    print("=" * W)
    print("  Commission ledger recompute")
    print("=" * W)

    try:
        for sale_id in args.sale_ids:
            sale = session.get(AffiliateSale, sale_id)
            try:
                if sale is not None and sale.status == SaleStatus.CANCELLED.value:
                    result = synchronizer.retract_sale_commission_ledgers(sale_id)
                else:
                    result = synchronizer.sync_sale_commission_ledgers(
                        sale_id,
                        regenerate=args.regenerate,
                        include_hq=args.include_hq,
                    )
            except CommissionKernelError as exc:
                failures += 1
                print(f"  sale {sale_id}: FAILED [{exc.code}] {exc}", file=sys.stderr)
                continue

            _print_result(result)

            if args.replay:
                replay = LedgerSelector(session).replay_sale(sale_id)
                if replay.is_consistent:
                    print(f"    replay OK ({replay.entries_checked} entries)")
                else:
                    failures += 1
                    for m in replay.mismatches:
                        print(
                            f"    replay MISMATCH {m.role.value}/{m.payee_key} "
                            f"{m.field_name}: stored={m.stored} recomputed={m.recomputed}"
                        )
    finally:
        session.close()

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
