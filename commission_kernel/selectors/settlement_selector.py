"""
Module: commission_kernel.selectors.settlement_selector
Responsibility: Payee settlement statements over a period, derived from
    commission ledger rows.
Architecture position: Kernel > Selectors.  Reads ledger rows, joining the
    sale only to filter a manager's team; never touches the formula.

Period semantics:
    An entry belongs to the period when period_start <= created_at <
    period_end.  Consecutive periods therefore never count an entry twice.
    Aware bounds are converted to UTC first; created_at is stored as UTC and
    SQLite compares it as text without an offset.

Statement totals are summed in Python over Decimal column values; SQL SUM
over NUMERIC is not exact on every backend the kernel runs on.
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from commission_kernel.domain.dtos import LedgerRole, PayeeStatement, StatementLine
from commission_kernel.logging_config import get_logger
from commission_kernel.models.affiliate import AffiliateSale
from commission_kernel.models.commission_ledger import CommissionLedgerEntry
from commission_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.settlement")

_ZERO = Decimal("0")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)


class SettlementAggregator(BaseSelector[CommissionLedgerEntry]):
    """
    Builds one statement per (payee, currency) for a settlement period.

    House (HQ_NET) entries are not payable and never appear.  Payees with
    entries in several currencies get one statement per currency; amounts in
    different currencies are never added together.
    """

    def build_statements(
        self,
        period_start: datetime,
        period_end: datetime,
        profile_ids: Iterable[UUID] | None = None,
        manager_id: UUID | None = None,
    ) -> list[PayeeStatement]:
        """
        Args:
            period_start: Inclusive lower bound on created_at.
            period_end: Exclusive upper bound on created_at.
            profile_ids: Restrict to these payees.  None means all payees.
            manager_id: Restrict to entries of sales this manager is the
                manager of record for.

        Returns:
            Statements ordered by payee id, then currency.

        Raises:
            ValueError: If period_end is not after period_start.
        """
        period_start = _as_utc(period_start)
        period_end = _as_utc(period_end)
        if period_end <= period_start:
            raise ValueError(
                f"period_end ({period_end.isoformat()}) must be after "
                f"period_start ({period_start.isoformat()})"
            )

        stmt = (
            select(CommissionLedgerEntry)
            .where(CommissionLedgerEntry.profile_id.is_not(None))
            .where(CommissionLedgerEntry.created_at >= period_start)
            .where(CommissionLedgerEntry.created_at < period_end)
            .order_by(CommissionLedgerEntry.created_at, CommissionLedgerEntry.id)
        )
        if profile_ids is not None:
            wanted = list(profile_ids)
            if not wanted:
                return []
            stmt = stmt.where(CommissionLedgerEntry.profile_id.in_(wanted))
        if manager_id is not None:
            stmt = stmt.join(
                AffiliateSale, AffiliateSale.id == CommissionLedgerEntry.sale_id
            ).where(AffiliateSale.manager_id == manager_id)

        rows = self.session.execute(stmt).scalars().all()

        grouped: dict[tuple[str, str], list[CommissionLedgerEntry]] = {}
        for row in rows:
            grouped.setdefault((str(row.profile_id), row.currency), []).append(row)

        statements = [
            _build_statement(group, period_start, period_end)
            for _, group in sorted(grouped.items(), key=lambda item: item[0])
        ]

        logger.info(
            "settlement_statements_built",
            extra={
                "period_start": period_start,
                "period_end": period_end,
                "manager_id": str(manager_id) if manager_id else None,
                "statement_count": len(statements),
                "entry_count": len(rows),
            },
        )
        return statements

    def team_statements(
        self,
        manager_id: UUID,
        period_start: datetime,
        period_end: datetime,
    ) -> list[PayeeStatement]:
        """
        Statements of the agents on a manager's sales, for that manager.

        The manager's own entries (branch and override commission) are
        left out; they appear in the manager's own statement.
        """
        return [
            statement
            for statement in self.build_statements(
                period_start, period_end, manager_id=manager_id
            )
            if statement.profile_id != manager_id
        ]


def _build_statement(
    rows: list[CommissionLedgerEntry],
    period_start: datetime,
    period_end: datetime,
) -> PayeeStatement:
    gross_by_role: dict[LedgerRole, Decimal] = {}
    gross = withholding = net = _ZERO
    lines: list[StatementLine] = []

    for row in rows:
        role = LedgerRole(row.role)
        gross_by_role[role] = gross_by_role.get(role, _ZERO) + row.gross_amount
        gross += row.gross_amount
        withholding += row.withholding_amount
        net += row.net_amount
        lines.append(
            StatementLine(
                entry_id=row.id,
                sale_id=row.sale_id,
                role=role,
                gross_amount=row.gross_amount,
                withholding_amount=row.withholding_amount,
                net_amount=row.net_amount,
                created_at=row.created_at,
            )
        )

    first = rows[0]
    return PayeeStatement(
        profile_id=first.profile_id,
        currency=first.currency,
        period_start=period_start,
        period_end=period_end,
        gross_by_role=gross_by_role,
        gross_amount=gross,
        withholding_amount=withholding,
        net_amount=net,
        entry_count=len(rows),
        sale_count=len({row.sale_id for row in rows}),
        lines=tuple(lines),
    )
