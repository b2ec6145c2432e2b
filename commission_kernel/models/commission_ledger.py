"""
Module: commission_kernel.models.commission_ledger
Responsibility: ORM persistence for commission ledger entries -- one row per
    (sale, role, payee) produced by a ledger regeneration.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (sale_id, role, payee_key) is unique.  payee_key is the payee's profile
      id as a string, or "HOUSE" for the HQ_NET row; a nullable profile_id
      alone could not back the constraint because NULLs never collide.
    - Rows are never updated.  Regeneration deletes the sale's set and
      inserts a new one inside one transaction.

Audit relevance:
    entry_metadata holds the serialized CommissionSnapshot: every input the
    formula saw, so the row can be recomputed independently of the current
    state of the sale.  The column names and types here are what settlement
    jobs read and must stay stable.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from commission_kernel.db.base import Base, UUIDString


class CommissionLedgerEntry(Base):
    """One commission amount owed to one payee for one sale."""

    __tablename__ = "commission_ledger_entries"

    __table_args__ = (
        UniqueConstraint("sale_id", "role", "payee_key", name="uq_ledger_sale_role_payee"),
        Index("idx_ledger_sale", "sale_id"),
        Index("idx_ledger_profile_created", "profile_id", "created_at"),
    )

    sale_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("affiliate_sales.id"),
        nullable=False,
    )

    # Null for the house (HQ_NET)
    profile_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("affiliate_profiles.id"),
        nullable=True,
    )

    payee_key: Mapped[str] = mapped_column(String(36), nullable=False)

    role: Mapped[str] = mapped_column(String(30), nullable=False)

    gross_amount: Mapped[Decimal] = mapped_column(nullable=False)

    withholding_rate: Mapped[Decimal] = mapped_column(Numeric(9, 4), nullable=False)

    withholding_amount: Mapped[Decimal] = mapped_column(nullable=False)

    net_amount: Mapped[Decimal] = mapped_column(nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    entry_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
