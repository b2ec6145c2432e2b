"""
Commission formula -- pure functional core of the commission ledger.

Responsibility:
    Turns a sale's resolved monetary inputs and the payees' withholding rates
    into an exact commission breakdown and the ledger-entry drafts that the
    synchronizer persists.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  No database, no clock, no
    configuration lookups: defaults (withholding rate, currency) are resolved
    by the caller and passed in.  Identical inputs produce identical outputs.

Invariants enforced:
    - net_revenue = sale - cost - branch - sales - override, exactly.  A
      negative result is an over-commissioned sale and is returned as is.
    - Per entry: net_amount = gross_amount - withholding_amount, exactly.
    - Rounding happens per entry (ROUND_HALF_UP, currency precision), never on
      aggregates.  The breakdown itself is not rounded.
    - Every draft of one call shares the same CommissionSnapshot.
    - Balance: commission grosses + net_revenue + cost reproduce the sale
      amount up to per-entry rounding.  A non-zero commission without a
      payee is rejected.

Failure modes:
    - ComputationError naming the offending field for negative or non-finite
      amounts, float inputs, rates outside [0, 100], a negative precision,
      or a non-zero commission whose payee id is missing.

Rounding drift:
    Sum of rounded entry grosses can differ from the exact breakdown by at
    most half a minor unit per entry.  The difference is returned as
    CommissionResult.rounding_drift so it stays visible.
"""

from decimal import Decimal
from uuid import UUID

from commission_kernel.domain.currency import round_amount
from commission_kernel.domain.dtos import (
    CommissionBreakdown,
    CommissionInput,
    CommissionResult,
    CommissionSnapshot,
    LedgerEntryDraft,
    LedgerRole,
)
from commission_kernel.exceptions import ComputationError

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

_AMOUNT_FIELDS = (
    "sale_amount",
    "cost_amount",
    "branch_commission",
    "sales_commission",
    "override_commission",
)

# Every commission amount must have someone to pay it to
_TIER_PAYEES = (
    ("sales_commission", "agent_profile_id"),
    ("branch_commission", "manager_profile_id"),
    ("override_commission", "override_profile_id"),
)


def _require_decimal(field: str, value: object) -> Decimal:
    if isinstance(value, bool) or isinstance(value, float):
        raise ComputationError(field, "must be Decimal, not float", repr(value))
    if isinstance(value, int):
        return Decimal(value)
    if not isinstance(value, Decimal):
        raise ComputationError(field, "must be Decimal", repr(value))
    if not value.is_finite():
        raise ComputationError(field, "must be finite", str(value))
    return value


def _require_non_negative(field: str, value: object) -> Decimal:
    amount = _require_decimal(field, value)
    if amount < _ZERO:
        raise ComputationError(field, "must not be negative", str(amount))
    return amount


def _require_rate(field: str, value: object) -> Decimal:
    rate = _require_decimal(field, value)
    if rate < _ZERO or rate > _HUNDRED:
        raise ComputationError(field, "must be a percentage between 0 and 100", str(rate))
    return rate


def validate_input(inputs: CommissionInput) -> None:
    """Reject malformed numeric input before anything is computed."""
    for name in _AMOUNT_FIELDS:
        _require_non_negative(name, getattr(inputs, name))
    _require_rate("withholding_rate", inputs.withholding_rate)
    _require_rate("manager_withholding_rate", inputs.manager_withholding_rate)
    if inputs.override_withholding_rate is not None:
        _require_rate("override_withholding_rate", inputs.override_withholding_rate)
    if isinstance(inputs.decimal_places, bool) or not isinstance(inputs.decimal_places, int):
        raise ComputationError("decimal_places", "must be an integer", repr(inputs.decimal_places))
    if inputs.decimal_places < 0:
        raise ComputationError("decimal_places", "must not be negative", str(inputs.decimal_places))
    if not inputs.currency or not isinstance(inputs.currency, str):
        raise ComputationError("currency", "is required", repr(inputs.currency))
    for amount_field, payee_field in _TIER_PAYEES:
        amount = getattr(inputs, amount_field)
        if amount != _ZERO and getattr(inputs, payee_field) is None:
            raise ComputationError(
                amount_field, f"non-zero commission with no payee ({payee_field})", str(amount)
            )


def compute_breakdown(inputs: CommissionInput) -> CommissionBreakdown:
    branch = Decimal(inputs.branch_commission)
    sales = Decimal(inputs.sales_commission)
    override = Decimal(inputs.override_commission)
    net_revenue = (
        Decimal(inputs.sale_amount) - Decimal(inputs.cost_amount) - branch - sales - override
    )
    return CommissionBreakdown(
        net_revenue=net_revenue,
        branch_commission=branch,
        sales_commission=sales,
        override_commission=override,
    )


def build_entry(
    *,
    sale_id: UUID,
    profile_id: UUID | None,
    role: LedgerRole,
    amount: Decimal,
    withholding_rate: Decimal,
    currency: str,
    decimal_places: int,
    snapshot: CommissionSnapshot,
) -> LedgerEntryDraft:
    """Round the gross, then withhold from the rounded gross."""
    gross = round_amount(amount, decimal_places)
    withholding = round_amount(gross * withholding_rate / _HUNDRED, decimal_places)
    return LedgerEntryDraft(
        sale_id=sale_id,
        profile_id=profile_id,
        role=role,
        gross_amount=gross,
        withholding_rate=withholding_rate,
        withholding_amount=withholding,
        net_amount=gross - withholding,
        currency=currency,
        snapshot=snapshot,
    )


def generate_ledger_entries(inputs: CommissionInput) -> CommissionResult:
    """
    Compute the breakdown and ledger-entry drafts for one sale.

    Entries, in order:
        AGENT_COMMISSION     sales_commission, agent rate
        MANAGER_COMMISSION   branch_commission, manager rate
        OVERRIDE_COMMISSION  override_commission, override rate (manager
                             rate when not given)
        HQ_NET               net_revenue, zero withholding, payee = house
    A commission entry is emitted when its amount is non-zero; a non-zero
    amount without a payee id is rejected by validate_input().  HQ_NET is
    emitted whenever include_hq_net is set, including a zero or negative
    net revenue.

    Raises:
        ComputationError: If any numeric input is malformed.
    """
    validate_input(inputs)

    breakdown = compute_breakdown(inputs)
    snapshot = CommissionSnapshot(inputs=inputs)
    places = inputs.decimal_places

    tiers = (
        (
            LedgerRole.AGENT_COMMISSION,
            inputs.agent_profile_id,
            breakdown.sales_commission,
            Decimal(inputs.withholding_rate),
        ),
        (
            LedgerRole.MANAGER_COMMISSION,
            inputs.manager_profile_id,
            breakdown.branch_commission,
            Decimal(inputs.manager_withholding_rate),
        ),
        (
            LedgerRole.OVERRIDE_COMMISSION,
            inputs.override_profile_id,
            breakdown.override_commission,
            Decimal(inputs.effective_override_rate),
        ),
    )

    entries: list[LedgerEntryDraft] = []
    drift = _ZERO

    for role, profile_id, amount, rate in tiers:
        if profile_id is None or amount == _ZERO:
            continue
        entry = build_entry(
            sale_id=inputs.sale_id,
            profile_id=profile_id,
            role=role,
            amount=amount,
            withholding_rate=rate,
            currency=inputs.currency,
            decimal_places=places,
            snapshot=snapshot,
        )
        drift += entry.gross_amount - amount
        entries.append(entry)

    if inputs.include_hq_net:
        hq = build_entry(
            sale_id=inputs.sale_id,
            profile_id=None,
            role=LedgerRole.HQ_NET,
            amount=breakdown.net_revenue,
            withholding_rate=_ZERO,
            currency=inputs.currency,
            decimal_places=places,
            snapshot=snapshot,
        )
        drift += hq.gross_amount - breakdown.net_revenue
        entries.append(hq)

    return CommissionResult(
        breakdown=breakdown,
        ledger_entries=tuple(entries),
        snapshot=snapshot,
        rounding_drift=drift,
    )
