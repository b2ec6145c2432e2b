"""
Data Transfer Objects -- immutable values passed between kernel layers.

Responsibility:
    Typed inputs and outputs of the commission formula, the ledger
    synchronizer, and the read-side selectors.  Nothing in here touches the
    database; ORM rows are converted to these at the selector boundary.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

The audit snapshot stored on every ledger row is a ``CommissionSnapshot``.
It is strictly typed inside the kernel and only becomes a JSON dict at the
storage boundary (``to_dict`` / ``from_dict``), so a later audit can rebuild
the exact ``CommissionInput`` and rerun the formula.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

HOUSE_PAYEE_KEY = "HOUSE"
SNAPSHOT_SCHEMA_VERSION = 1


class LedgerRole(str, Enum):
    """Which share of the sale a ledger entry represents."""

    AGENT_COMMISSION = "AGENT_COMMISSION"
    MANAGER_COMMISSION = "MANAGER_COMMISSION"
    OVERRIDE_COMMISSION = "OVERRIDE_COMMISSION"
    HQ_NET = "HQ_NET"


def payee_key_for(profile_id: UUID | None) -> str:
    """Non-null stand-in for the payee in the (sale, role, payee) key."""
    return str(profile_id) if profile_id is not None else HOUSE_PAYEE_KEY


def _uuid_or_none(value: Any) -> UUID | None:
    return UUID(str(value)) if value is not None else None


def _str_or_none(value: Any) -> str | None:
    return str(value) if value is not None else None


# ---------------------------------------------------------------------------
# Formula input
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SaleContext:
    """Descriptive facts about the sale, carried for audit only."""

    sale_id: UUID
    status: str
    manager_id: UUID | None = None
    agent_id: UUID | None = None
    sale_date: datetime | None = None
    product_code: str | None = None
    source: str = "auto-generated"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "sale_id": str(self.sale_id),
            "status": self.status,
            "manager_id": _str_or_none(self.manager_id),
            "agent_id": _str_or_none(self.agent_id),
            "sale_date": self.sale_date.isoformat() if self.sale_date else None,
            "product_code": self.product_code,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SaleContext:
        sale_date = data.get("sale_date")
        return cls(
            sale_id=UUID(data["sale_id"]),
            status=data["status"],
            manager_id=_uuid_or_none(data.get("manager_id")),
            agent_id=_uuid_or_none(data.get("agent_id")),
            sale_date=datetime.fromisoformat(sale_date) if sale_date else None,
            product_code=data.get("product_code"),
            source=data.get("source", "auto-generated"),
        )


@dataclass(frozen=True)
class CommissionInput:
    """
    Everything the commission formula needs, already resolved.

    Commission amounts are policy inputs decided by the rate table upstream;
    the formula splits and taxes them, it never derives them.  Withholding
    rates are percentages (``Decimal("3.3")`` means 3.3%).
    """

    sale_id: UUID
    sale_amount: Decimal
    cost_amount: Decimal
    currency: str
    decimal_places: int
    branch_commission: Decimal = Decimal("0")
    sales_commission: Decimal = Decimal("0")
    override_commission: Decimal = Decimal("0")
    manager_profile_id: UUID | None = None
    agent_profile_id: UUID | None = None
    override_profile_id: UUID | None = None
    withholding_rate: Decimal = Decimal("0")
    manager_withholding_rate: Decimal = Decimal("0")
    override_withholding_rate: Decimal | None = None
    include_hq_net: bool = True
    context: SaleContext | None = None

    @property
    def effective_override_rate(self) -> Decimal:
        if self.override_withholding_rate is not None:
            return self.override_withholding_rate
        return self.manager_withholding_rate


@dataclass(frozen=True)
class CommissionSnapshot:
    """Serializable copy of every formula input, shared by all entries of a run."""

    inputs: CommissionInput
    schema_version: int = SNAPSHOT_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        i = self.inputs
        return {
            "schema_version": self.schema_version,
            "sale_id": str(i.sale_id),
            "sale_amount": str(i.sale_amount),
            "cost_amount": str(i.cost_amount),
            "currency": i.currency,
            "decimal_places": i.decimal_places,
            "branch_commission": str(i.branch_commission),
            "sales_commission": str(i.sales_commission),
            "override_commission": str(i.override_commission),
            "manager_profile_id": _str_or_none(i.manager_profile_id),
            "agent_profile_id": _str_or_none(i.agent_profile_id),
            "override_profile_id": _str_or_none(i.override_profile_id),
            "withholding_rate": str(i.withholding_rate),
            "manager_withholding_rate": str(i.manager_withholding_rate),
            "override_withholding_rate": _str_or_none(i.override_withholding_rate),
            "include_hq_net": i.include_hq_net,
            "context": i.context.to_dict() if i.context else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommissionSnapshot:
        override_rate = data.get("override_withholding_rate")
        context = data.get("context")
        inputs = CommissionInput(
            sale_id=UUID(data["sale_id"]),
            sale_amount=Decimal(data["sale_amount"]),
            cost_amount=Decimal(data["cost_amount"]),
            currency=data["currency"],
            decimal_places=int(data["decimal_places"]),
            branch_commission=Decimal(data["branch_commission"]),
            sales_commission=Decimal(data["sales_commission"]),
            override_commission=Decimal(data["override_commission"]),
            manager_profile_id=_uuid_or_none(data.get("manager_profile_id")),
            agent_profile_id=_uuid_or_none(data.get("agent_profile_id")),
            override_profile_id=_uuid_or_none(data.get("override_profile_id")),
            withholding_rate=Decimal(data["withholding_rate"]),
            manager_withholding_rate=Decimal(data["manager_withholding_rate"]),
            override_withholding_rate=(
                Decimal(override_rate) if override_rate is not None else None
            ),
            include_hq_net=bool(data["include_hq_net"]),
            context=SaleContext.from_dict(context) if context else None,
        )
        return cls(inputs=inputs, schema_version=int(data.get("schema_version", 1)))


# ---------------------------------------------------------------------------
# Formula output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommissionBreakdown:
    """How the sale amount splits.  Exact, never rounded or clamped."""

    net_revenue: Decimal
    branch_commission: Decimal
    sales_commission: Decimal
    override_commission: Decimal

    @property
    def total_commission(self) -> Decimal:
        return self.branch_commission + self.sales_commission + self.override_commission

    @property
    def is_over_commissioned(self) -> bool:
        """Commissions and cost exceed the sale amount."""
        return self.net_revenue < 0

    def to_dict(self) -> dict[str, str]:
        return {
            "net_revenue": str(self.net_revenue),
            "branch_commission": str(self.branch_commission),
            "sales_commission": str(self.sales_commission),
            "override_commission": str(self.override_commission),
        }


@dataclass(frozen=True)
class LedgerEntryDraft:
    """One ledger row to be inserted, before it has an id or a timestamp."""

    sale_id: UUID
    profile_id: UUID | None
    role: LedgerRole
    gross_amount: Decimal
    withholding_rate: Decimal
    withholding_amount: Decimal
    net_amount: Decimal
    currency: str
    snapshot: CommissionSnapshot

    @property
    def payee_key(self) -> str:
        return payee_key_for(self.profile_id)


@dataclass(frozen=True)
class CommissionResult:
    """
    Output of the commission formula.

    ``rounding_drift`` is the sum over emitted entries of (rounded gross -
    exact amount).  It is bounded by half a minor unit per entry and is
    reported instead of being absorbed into any one entry.
    """

    breakdown: CommissionBreakdown
    ledger_entries: tuple[LedgerEntryDraft, ...]
    snapshot: CommissionSnapshot
    rounding_drift: Decimal = Decimal("0")


# ---------------------------------------------------------------------------
# Synchronizer output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SyncResult:
    """Result of a ledger sync or retraction."""

    sale_id: UUID
    breakdown: CommissionBreakdown
    entries_created: int
    entries_deleted: int = 0
    regenerated: bool = False


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerEntryRecord:
    """A persisted ledger row."""

    id: UUID
    sale_id: UUID
    profile_id: UUID | None
    role: LedgerRole
    gross_amount: Decimal
    withholding_rate: Decimal
    withholding_amount: Decimal
    net_amount: Decimal
    currency: str
    metadata: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class ReplayMismatch:
    """One field that differs between a stored entry and its recomputation."""

    role: LedgerRole
    payee_key: str
    field_name: str
    stored: str | None
    recomputed: str | None


@dataclass(frozen=True)
class ReplayResult:
    """Outcome of recomputing a sale's ledger from its stored snapshots."""

    sale_id: UUID
    entries_checked: int
    mismatches: tuple[ReplayMismatch, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return not self.mismatches


@dataclass(frozen=True)
class StatementLine:
    """One ledger entry as it appears on a payee statement."""

    entry_id: UUID
    sale_id: UUID
    role: LedgerRole
    gross_amount: Decimal
    withholding_amount: Decimal
    net_amount: Decimal
    created_at: datetime


@dataclass(frozen=True)
class PayeeStatement:
    """Payable totals for one payee in one currency over one period."""

    profile_id: UUID
    currency: str
    period_start: datetime
    period_end: datetime
    gross_by_role: dict[LedgerRole, Decimal] = field(default_factory=dict)
    gross_amount: Decimal = Decimal("0")
    withholding_amount: Decimal = Decimal("0")
    net_amount: Decimal = Decimal("0")
    entry_count: int = 0
    sale_count: int = 0
    lines: tuple[StatementLine, ...] = ()
