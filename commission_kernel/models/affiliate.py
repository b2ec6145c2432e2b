"""
Module: commission_kernel.models.affiliate
Responsibility: ORM mapping of the affiliate records the commission engine
    reads: profiles (payees), products (currency source) and sales.
Architecture position: Kernel > Models.  May import from db/base.py only.

Ownership:
    Profiles and products belong to the partner-management collaborator and
    are read-only here.  Sales belong to the sales collaborator, except for
    the cached commission summary (net_revenue and the three commission
    columns), which only the ledger synchronizer writes.

Invariant (after every ledger regeneration):
    net_revenue = sale_amount - cost_amount
                  - branch_commission - sales_commission - override_commission
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commission_kernel.db.base import Base, UUIDString


class ProfileType(str, Enum):
    """Tier of an affiliate in the sales hierarchy."""

    BRANCH_MANAGER = "BRANCH_MANAGER"
    SALES_AGENT = "SALES_AGENT"


class AffiliateProfile(Base):
    """
    A commission-earning party.

    A profile can be the manager, the agent and the override beneficiary of
    the same sale at once.  A null withholding_rate means "use the system
    default".
    """

    __tablename__ = "affiliate_profiles"

    __table_args__ = (Index("idx_affiliate_profile_type", "profile_type"),)

    profile_type: Mapped[str] = mapped_column(String(20), nullable=False)

    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    affiliate_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Percentage, e.g. 3.3
    withholding_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(9, 4),
        nullable=True,
    )


class AffiliateProduct(Base):
    """A sellable cruise product.  Source of the sale's currency."""

    __tablename__ = "affiliate_products"

    product_code: Mapped[str] = mapped_column(String(50), nullable=False)

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)

    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)


class AffiliateSale(Base):
    """
    One commercial transaction closed through the affiliate hierarchy.

    Both manager_id and agent_id may be null (HQ-direct sale).  Amounts are in
    major currency units; null commission columns count as zero.
    """

    __tablename__ = "affiliate_sales"

    __table_args__ = (
        Index("idx_affiliate_sale_status", "status"),
        Index("idx_affiliate_sale_manager", "manager_id"),
        Index("idx_affiliate_sale_agent", "agent_id"),
    )

    status: Mapped[str] = mapped_column(String(20), nullable=False)

    sale_amount: Mapped[Decimal] = mapped_column(nullable=False)

    cost_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    product_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("affiliate_products.id"),
        nullable=True,
    )

    product_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    sale_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    manager_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("affiliate_profiles.id"),
        nullable=True,
    )

    agent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("affiliate_profiles.id"),
        nullable=True,
    )

    # Commission inputs decided by the rate table, then the cached summary
    # written back by the ledger synchronizer
    branch_commission: Mapped[Decimal | None] = mapped_column(nullable=True)

    sales_commission: Mapped[Decimal | None] = mapped_column(nullable=True)

    override_commission: Mapped[Decimal | None] = mapped_column(nullable=True)

    net_revenue: Mapped[Decimal | None] = mapped_column(nullable=True)

    manager: Mapped["AffiliateProfile | None"] = relationship(
        AffiliateProfile,
        foreign_keys=[manager_id],
    )

    agent: Mapped["AffiliateProfile | None"] = relationship(
        AffiliateProfile,
        foreign_keys=[agent_id],
    )

    product: Mapped["AffiliateProduct | None"] = relationship(AffiliateProduct)
