"""
LedgerStore -- persistence collaborator of the ledger synchronizer.

Responsibility:
    The four writes and one locked read a ledger regeneration needs: load a
    sale with its hierarchy and product, delete a sale's entries, insert
    entry drafts skipping rows that already exist, and write the computed
    breakdown back onto the sale.

Architecture position:
    Kernel > Services.  Flush-only; runs inside the caller's transaction
    (normally the synchronizer's savepoint).

Invariants enforced:
    - Inserts never raise on an existing (sale_id, role, payee_key): the
      conflicting row is skipped and not counted.  This is what makes a
      repeated non-regenerating sync a no-op.
    - Every row of one insert_entries() call gets the same created_at.

Failure modes:
    - SQLAlchemyError propagates unchanged; the synchronizer wraps it.
"""

from typing import Sequence
from uuid import UUID, uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, joinedload

from commission_kernel.domain.clock import Clock, SystemClock
from commission_kernel.domain.dtos import CommissionBreakdown, LedgerEntryDraft
from commission_kernel.logging_config import get_logger
from commission_kernel.models.affiliate import AffiliateSale
from commission_kernel.models.commission_ledger import CommissionLedgerEntry
from commission_kernel.services.base import BaseService

logger = get_logger("services.ledger_store")

_CONFLICT_COLUMNS = ["sale_id", "role", "payee_key"]


class LedgerStore(BaseService[CommissionLedgerEntry]):
    """Reads and writes for one sale's ledger within the caller's transaction."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def load_sale_for_update(self, sale_id: UUID) -> AffiliateSale | None:
        """
        Sale with manager, agent and product joined, row-locked.

        Only the sale row is locked; FOR UPDATE on the outer-joined side is
        rejected by PostgreSQL.  SQLite ignores the clause.
        """
        stmt = (
            select(AffiliateSale)
            .options(
                joinedload(AffiliateSale.manager),
                joinedload(AffiliateSale.agent),
                joinedload(AffiliateSale.product),
            )
            .where(AffiliateSale.id == sale_id)
            .with_for_update(of=AffiliateSale)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def delete_entries(self, sale_id: UUID) -> int:
        """Remove every ledger entry of the sale.  Returns the row count."""
        result = self.session.execute(
            delete(CommissionLedgerEntry).where(CommissionLedgerEntry.sale_id == sale_id)
        )
        return result.rowcount or 0

    def insert_entries(self, drafts: Sequence[LedgerEntryDraft]) -> int:
        """
        Insert drafts, skipping any whose (sale_id, role, payee_key) exists.

        Returns:
            Number of rows actually inserted.
        """
        if not drafts:
            return 0

        created_at = self._clock.now()
        insert = self._dialect_insert()
        table = CommissionLedgerEntry.__table__
        inserted = 0

        for draft in drafts:
            stmt = (
                insert(table)
                .values(
                    id=uuid4(),
                    sale_id=draft.sale_id,
                    profile_id=draft.profile_id,
                    payee_key=draft.payee_key,
                    role=draft.role.value,
                    gross_amount=draft.gross_amount,
                    withholding_rate=draft.withholding_rate,
                    withholding_amount=draft.withholding_amount,
                    net_amount=draft.net_amount,
                    currency=draft.currency,
                    metadata=draft.snapshot.to_dict(),
                    created_at=created_at,
                )
                .on_conflict_do_nothing(index_elements=_CONFLICT_COLUMNS)
            )
            result = self.session.execute(stmt)
            if result.rowcount:
                inserted += result.rowcount
            else:
                logger.debug(
                    "ledger_entry_exists",
                    extra={"role": draft.role.value, "payee_key": draft.payee_key},
                )

        return inserted

    def update_sale_summary(
        self,
        sale_id: UUID,
        breakdown: CommissionBreakdown,
    ) -> None:
        """Write the exact breakdown onto the sale's cached columns."""
        self.session.execute(
            update(AffiliateSale)
            .where(AffiliateSale.id == sale_id)
            .values(
                net_revenue=breakdown.net_revenue,
                branch_commission=breakdown.branch_commission,
                sales_commission=breakdown.sales_commission,
                override_commission=breakdown.override_commission,
            )
            .execution_options(synchronize_session="fetch")
        )

    def _dialect_insert(self):
        name = self.session.get_bind().dialect.name
        if name == "postgresql":
            return postgresql.insert
        if name == "sqlite":
            return sqlite.insert
        raise NotImplementedError(f"Conflict-skipping insert not supported on {name}")

