"""Tests for the settlement report and recompute script helpers."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from commission_kernel.domain.dtos import LedgerRole, PayeeStatement
from scripts import recompute_ledger, settlement_report


@pytest.fixture
def statement():
    return PayeeStatement(
        profile_id=uuid4(),
        currency="KRW",
        period_start=datetime(2024, 3, 1, tzinfo=timezone.utc),
        period_end=datetime(2024, 4, 1, tzinfo=timezone.utc),
        gross_by_role={
            LedgerRole.OVERRIDE_COMMISSION: Decimal("10000"),
            LedgerRole.MANAGER_COMMISSION: Decimal("50000"),
        },
        gross_amount=Decimal("60000"),
        withholding_amount=Decimal("1980"),
        net_amount=Decimal("58020"),
        entry_count=2,
        sale_count=1,
    )


class TestSettlementReport:
    def test_statement_to_dict(self, statement):
        data = settlement_report.statement_to_dict(statement)

        assert data["profile_id"] == str(statement.profile_id)
        assert data["gross_by_role"] == {
            "OVERRIDE_COMMISSION": "10000",
            "MANAGER_COMMISSION": "50000",
        }
        assert data["net_amount"] == "58020"
        assert data["period_end"] == "2024-04-01T00:00:00+00:00"

    def test_format_statement_lists_roles_then_totals(self, statement):
        lines = settlement_report.format_statement(statement)

        labels = [line.split()[0] for line in lines[3:]]
        assert labels == ["MANAGER_COMMISSION", "OVERRIDE_COMMISSION", "GROSS", "WITHHOLDING", "NET"]
        assert lines[-1].endswith("58020")

    def test_dates_parsed_as_utc_midnight(self):
        args = settlement_report._parse_args(["--start", "2024-03-01", "--end", "2024-04-01"])

        assert args.start == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert args.profile_ids is None
        assert args.json is False
        assert args.manager_id is None

    def test_manager_id_parsed(self):
        manager_id = uuid4()
        args = settlement_report._parse_args(
            ["--start", "2024-03-01", "--end", "2024-04-01", "--manager-id", str(manager_id)]
        )

        assert args.manager_id == manager_id

    def test_manager_and_profile_filters_exclusive(self):
        with pytest.raises(SystemExit):
            settlement_report._parse_args(
                [
                    "--start", "2024-03-01", "--end", "2024-04-01",
                    "--manager-id", str(uuid4()), "--profile-id", str(uuid4()),
                ]
            )


class TestRecomputeArgs:
    def test_defaults(self):
        sale_id = uuid4()
        args = recompute_ledger._parse_args(["--sale-id", str(sale_id)])

        assert args.sale_ids == [sale_id]
        assert args.regenerate is True
        assert args.include_hq is None

    def test_flags(self):
        args = recompute_ledger._parse_args(
            ["--sale-id", str(uuid4()), "--sale-id", str(uuid4()), "--no-regenerate", "--no-hq"]
        )

        assert len(args.sale_ids) == 2
        assert args.regenerate is False
        assert args.include_hq is False

    def test_sale_id_required(self):
        with pytest.raises(SystemExit):
            recompute_ledger._parse_args([])
