"""
Tests for payee settlement statements.

Entries are stamped by the deterministic clock, so moving the clock between
syncs places them in different periods.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from commission_kernel.domain.dtos import LedgerRole
from commission_kernel.models.affiliate import ProfileType
from commission_kernel.selectors.ledger_selector import LedgerSelector
from commission_kernel.selectors.settlement_selector import SettlementAggregator

MARCH_START = datetime(2024, 3, 1, tzinfo=timezone.utc)
APRIL_START = datetime(2024, 4, 1, tzinfo=timezone.utc)
MAY_START = datetime(2024, 5, 1, tzinfo=timezone.utc)


def by_payee(statements):
    return {(s.profile_id, s.currency): s for s in statements}


class TestStatements:
    def test_statement_per_payee(self, session, synchronizer, standard_sale, manager, agent):
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)

        statements = by_payee(
            SettlementAggregator(session).build_statements(MARCH_START, APRIL_START)
        )

        assert set(statements) == {(manager.id, "KRW"), (agent.id, "KRW")}

        mgr = statements[(manager.id, "KRW")]
        assert mgr.gross_by_role == {
            LedgerRole.MANAGER_COMMISSION: Decimal("50000"),
            LedgerRole.OVERRIDE_COMMISSION: Decimal("10000"),
        }
        assert mgr.gross_amount == Decimal("60000")
        assert mgr.withholding_amount == Decimal("1980")
        assert mgr.net_amount == Decimal("58020")
        assert mgr.entry_count == 2
        assert mgr.sale_count == 1

        agt = statements[(agent.id, "KRW")]
        assert agt.gross_amount == Decimal("70000")
        assert agt.withholding_amount == Decimal("2310")
        assert agt.net_amount == Decimal("67690")

    def test_house_entries_never_appear(self, session, synchronizer, standard_sale):
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)

        statements = SettlementAggregator(session).build_statements(MARCH_START, APRIL_START)

        assert all(s.profile_id is not None for s in statements)
        roles = {line.role for s in statements for line in s.lines}
        assert LedgerRole.HQ_NET not in roles

    def test_totals_match_ledger_rows(self, session, synchronizer, standard_sale, agent):
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)

        statement = by_payee(
            SettlementAggregator(session).build_statements(MARCH_START, APRIL_START)
        )[(agent.id, "KRW")]
        rows = [
            r for r in LedgerSelector(session).entries_for_sale(standard_sale.id)
            if r.profile_id == agent.id
        ]

        assert statement.gross_amount == sum((r.gross_amount for r in rows), Decimal(0))
        assert statement.net_amount == sum((r.net_amount for r in rows), Decimal(0))
        assert [line.entry_id for line in statement.lines] == [r.id for r in rows]

    def test_currencies_are_never_mixed(
        self, session, synchronizer, make_sale, make_product, standard_sale, manager, agent
    ):
        usd_product = make_product(currency="USD", product_code="TOUR-USD")
        usd_sale = make_sale(
            sale_amount=Decimal("1000.00"),
            cost_amount=Decimal("500.00"),
            sales_commission=Decimal("100.00"),
            manager=manager,
            agent=agent,
            product=usd_product,
        )
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)
        synchronizer.sync_sale_commission_ledgers(usd_sale.id)

        statements = by_payee(
            SettlementAggregator(session).build_statements(MARCH_START, APRIL_START)
        )

        assert statements[(agent.id, "KRW")].gross_amount == Decimal("70000")
        assert statements[(agent.id, "USD")].gross_amount == Decimal("100.00")
        assert statements[(agent.id, "USD")].withholding_amount == Decimal("3.30")


class TestPeriods:
    def test_entries_split_by_creation_time(
        self, session, synchronizer, deterministic_clock, make_sale, standard_sale,
        manager, agent, krw_product,
    ):
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)

        deterministic_clock.set_time(datetime(2024, 4, 10, 12, 0, tzinfo=timezone.utc))
        april_sale = make_sale(
            sale_amount=Decimal("500000"),
            cost_amount=Decimal("300000"),
            sales_commission=Decimal("20000"),
            manager=manager,
            agent=agent,
            product=krw_product,
        )
        synchronizer.sync_sale_commission_ledgers(april_sale.id)

        aggregator = SettlementAggregator(session)
        march = by_payee(aggregator.build_statements(MARCH_START, APRIL_START))
        april = by_payee(aggregator.build_statements(APRIL_START, MAY_START))

        assert march[(agent.id, "KRW")].gross_amount == Decimal("70000")
        assert april[(agent.id, "KRW")].gross_amount == Decimal("20000")
        assert (manager.id, "KRW") not in april

    def test_period_end_is_exclusive(self, session, synchronizer, deterministic_clock, standard_sale):
        deterministic_clock.set_time(APRIL_START)
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)

        aggregator = SettlementAggregator(session)

        assert aggregator.build_statements(MARCH_START, APRIL_START) == []
        assert len(aggregator.build_statements(APRIL_START, MAY_START)) == 2

    def test_empty_period(self, session):
        assert SettlementAggregator(session).build_statements(MARCH_START, APRIL_START) == []

    def test_offset_bounds_compare_in_utc(self, session, synchronizer, standard_sale, agent):
        seoul = timezone(timedelta(hours=9))
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)

        statements = by_payee(
            SettlementAggregator(session).build_statements(
                datetime(2024, 3, 15, 18, 0, tzinfo=seoul),
                datetime(2024, 3, 15, 19, 0, tzinfo=seoul),
            )
        )

        agt = statements[(agent.id, "KRW")]
        assert agt.gross_amount == Decimal("70000")
        assert agt.period_start == datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc)

    def test_offset_bounds_exclude_outside_entries(self, session, synchronizer, standard_sale):
        seoul = timezone(timedelta(hours=9))
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)

        # 09:00 and 10:00 Seoul time is midnight UTC, well before the entries
        assert SettlementAggregator(session).build_statements(
            datetime(2024, 3, 15, 9, 0, tzinfo=seoul),
            datetime(2024, 3, 15, 10, 0, tzinfo=seoul),
        ) == []

    @pytest.mark.parametrize("end", [MARCH_START, datetime(2024, 2, 1, tzinfo=timezone.utc)])
    def test_invalid_period_rejected(self, session, end):
        with pytest.raises(ValueError):
            SettlementAggregator(session).build_statements(MARCH_START, end)


class TestProfileFilter:
    def test_only_requested_payees(self, session, synchronizer, standard_sale, agent):
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)

        statements = SettlementAggregator(session).build_statements(
            MARCH_START, APRIL_START, profile_ids=[agent.id]
        )

        assert [s.profile_id for s in statements] == [agent.id]

    def test_empty_filter_returns_nothing(self, session, synchronizer, standard_sale):
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)

        assert SettlementAggregator(session).build_statements(
            MARCH_START, APRIL_START, profile_ids=[]
        ) == []

    def test_logs_statement_build(self, session, synchronizer, standard_sale, captured_logs):
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)
        SettlementAggregator(session).build_statements(MARCH_START, APRIL_START)

        built = [r for r in captured_logs() if r["message"] == "settlement_statements_built"]
        assert len(built) == 1
        assert built[0]["statement_count"] == 2


class TestManagerFilter:
    @pytest.fixture
    def other_team_sale(self, make_sale, make_profile, krw_product):
        other_manager = make_profile(
            profile_type=ProfileType.BRANCH_MANAGER, display_name="Branch Daegu"
        )
        other_agent = make_profile(
            profile_type=ProfileType.SALES_AGENT, display_name="Agent Park"
        )
        return make_sale(
            sale_amount=Decimal("800000"),
            cost_amount=Decimal("500000"),
            branch_commission=Decimal("40000"),
            sales_commission=Decimal("30000"),
            manager=other_manager,
            agent=other_agent,
            product=krw_product,
        )

    def test_manager_filter_limits_to_managed_sales(
        self, session, synchronizer, standard_sale, other_team_sale, manager, agent
    ):
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)
        synchronizer.sync_sale_commission_ledgers(other_team_sale.id)

        statements = by_payee(
            SettlementAggregator(session).build_statements(
                MARCH_START, APRIL_START, manager_id=manager.id
            )
        )

        assert set(statements) == {(manager.id, "KRW"), (agent.id, "KRW")}
        assert statements[(agent.id, "KRW")].gross_amount == Decimal("70000")

    def test_team_statements_exclude_manager_and_other_teams(
        self, session, synchronizer, standard_sale, other_team_sale, manager, agent
    ):
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)
        synchronizer.sync_sale_commission_ledgers(other_team_sale.id)

        statements = SettlementAggregator(session).team_statements(
            manager.id, MARCH_START, APRIL_START
        )

        assert [s.profile_id for s in statements] == [agent.id]
        assert statements[0].gross_amount == Decimal("70000")
        assert statements[0].sale_count == 1

    def test_agent_on_other_team_sale_counts_only_managed_sales(
        self, session, synchronizer, make_sale, make_profile, standard_sale, manager, agent,
        krw_product,
    ):
        other_manager = make_profile(
            profile_type=ProfileType.BRANCH_MANAGER, display_name="Branch Daegu"
        )
        shared_sale = make_sale(
            sale_amount=Decimal("500000"),
            cost_amount=Decimal("300000"),
            branch_commission=Decimal("10000"),
            sales_commission=Decimal("20000"),
            manager=other_manager,
            agent=agent,
            product=krw_product,
        )
        synchronizer.sync_sale_commission_ledgers(standard_sale.id)
        synchronizer.sync_sale_commission_ledgers(shared_sale.id)

        aggregator = SettlementAggregator(session)
        team = aggregator.team_statements(manager.id, MARCH_START, APRIL_START)
        everything = by_payee(aggregator.build_statements(MARCH_START, APRIL_START))

        assert team[0].gross_amount == Decimal("70000")
        assert everything[(agent.id, "KRW")].gross_amount == Decimal("90000")
