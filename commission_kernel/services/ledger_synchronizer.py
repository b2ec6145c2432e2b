"""
LedgerSynchronizer -- keeps a sale's commission ledger consistent with it.

Responsibility:
    Loads a sale with its manager, agent and product, resolves withholding
    rates and currency, runs the commission formula, and replaces or fills
    the sale's ledger entries and cached summary.  The only writer of
    commission ledger rows.

Architecture position:
    Kernel > Services -- imperative shell around the pure formula in
    ``commission_kernel.domain.commission_formula``.

Invariants enforced:
    - Idempotence: the same sale state with regenerate=True always leaves
      the same ledger; without regenerate an existing set is never
      duplicated (inserts skip on (sale_id, role, payee_key)).
    - Atomicity: delete, insert and the sale cache update run inside one
      savepoint; a failure at any step leaves the previous ledger intact.
    - Validation (missing sale or profile, status, currency, malformed
      amounts) completes before the first write.
    - Same-sale calls serialize: in-process through SaleLockRegistry,
      across processes through the sale's row lock (PostgreSQL).

Transaction boundary:
    With auto_commit=True (default) each call commits on success and rolls
    back on failure.  With auto_commit=False the caller owns the outer
    transaction; the savepoint still guarantees the ledger write is
    all-or-nothing.

Failure modes:
    - SaleNotFoundError / ProfileNotFoundError: permanent.
    - SaleNotEligibleError: status does not permit the operation.
    - CurrencyNotResolvedError / ComputationError: bad inputs, nothing written.
    - PersistenceError (retryable): any SQLAlchemyError from the store.
"""

import time
from decimal import Decimal
from uuid import UUID
from uuid import uuid4 as _uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from commission_config.schema import CommissionSettings, MissingCurrencyPolicy
from commission_kernel.domain.clock import Clock, SystemClock
from commission_kernel.domain.commission_formula import generate_ledger_entries
from commission_kernel.domain.currency import CurrencyRegistry
from commission_kernel.domain.dtos import (
    CommissionInput,
    CommissionResult,
    SaleContext,
    SyncResult,
)
from commission_kernel.domain.sale_lifecycle import SaleStatus, is_ledger_eligible
from commission_kernel.exceptions import (
    CurrencyNotResolvedError,
    PersistenceError,
    ProfileNotFoundError,
    SaleNotEligibleError,
    SaleNotFoundError,
)
from commission_kernel.logging_config import LogContext, get_logger
from commission_kernel.models.affiliate import AffiliateProfile, AffiliateSale
from commission_kernel.services.ledger_store import LedgerStore
from commission_kernel.services.sale_locks import SaleLockRegistry, default_registry

logger = get_logger("services.ledger_synchronizer")

_ZERO = Decimal("0")


def _amount(value: Decimal | None) -> Decimal:
    return value if value is not None else _ZERO


class LedgerSynchronizer:
    """
    Regenerates commission ledger entries for one sale per call.

    Contract:
        Settings are injected at construction; the formula never reads
        configuration.  One synchronizer wraps one session and must not be
        shared across threads.
    """

    def __init__(
        self,
        session: Session,
        settings: CommissionSettings | None = None,
        clock: Clock | None = None,
        locks: SaleLockRegistry | None = None,
        auto_commit: bool = True,
    ):
        """
        Args:
            session: SQLAlchemy session.
            settings: Policy defaults.  Defaults to CommissionSettings().
            clock: Clock for created_at timestamps.  Defaults to SystemClock.
            locks: Per-sale lock registry.  Defaults to the process-wide one.
            auto_commit: If True (default), commits on success and rolls back
                on failure.  If False, the caller manages the transaction.
        """
        self._session = session
        self._settings = settings or CommissionSettings()
        self._clock = clock or SystemClock()
        self._locks = locks or default_registry()
        self._auto_commit = auto_commit
        self._store = LedgerStore(session, self._clock)

    def sync_sale_commission_ledgers(
        self,
        sale_id: UUID,
        regenerate: bool = False,
        include_hq: bool | None = None,
    ) -> SyncResult:
        """
        Bring the ledger of one sale in line with its current state.

        Args:
            sale_id: Sale to sync.
            regenerate: Delete the sale's existing entries before inserting.
                Without it, entries that already exist are left as they are.
            include_hq: Emit the HQ_NET entry.  None means the settings
                default.

        Returns:
            SyncResult with the exact breakdown and the number of rows
            actually inserted.
        """
        include_hq_net = self._settings.include_hq_default if include_hq is None else include_hq
        return self._run(
            sale_id,
            operation="sync",
            regenerate=regenerate,
            include_hq_net=include_hq_net,
            retract=False,
        )

    def retract_sale_commission_ledgers(self, sale_id: UUID) -> SyncResult:
        """
        Void the ledger of a cancelled sale.

        Replaces the sale's entries with an empty set and zeroes its cached
        commissions, using the same savepoint-guarded replace as a
        regeneration.

        Raises:
            SaleNotEligibleError: If the sale is not CANCELLED.
        """
        return self._run(
            sale_id,
            operation="retract",
            regenerate=True,
            include_hq_net=False,
            retract=True,
        )

    def _run(
        self,
        sale_id: UUID,
        operation: str,
        regenerate: bool,
        include_hq_net: bool,
        retract: bool,
    ) -> SyncResult:
        correlation_id = str(_uuid4())
        with LogContext.bind(correlation_id=correlation_id, sale_id=str(sale_id)):
            logger.info(
                "ledger_sync_started",
                extra={
                    "operation": operation,
                    "regenerate": regenerate,
                    "include_hq_net": include_hq_net,
                },
            )
            t0 = time.monotonic()
            try:
                with self._locks.hold(sale_id):
                    result = self._sync_locked(
                        sale_id, operation, regenerate, include_hq_net, retract
                    )
                    if self._auto_commit:
                        self._session.commit()
            except SQLAlchemyError as exc:
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    "ledger_sync_failed",
                    extra={"operation": operation, "error": type(exc).__name__},
                    exc_info=True,
                )
                raise PersistenceError(str(sale_id), operation, str(exc)) from exc
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    "ledger_sync_rejected",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "ledger_sync_completed",
                extra={
                    "operation": operation,
                    "entries_created": result.entries_created,
                    "entries_deleted": result.entries_deleted,
                    "net_revenue": result.breakdown.net_revenue,
                    "duration_ms": duration_ms,
                },
            )
            return result

    def _sync_locked(
        self,
        sale_id: UUID,
        operation: str,
        regenerate: bool,
        include_hq_net: bool,
        retract: bool,
    ) -> SyncResult:
        sale = self._store.load_sale_for_update(sale_id)
        if sale is None:
            raise SaleNotFoundError(str(sale_id))

        self._check_profiles(sale)
        self._check_status(sale, operation, retract)

        inputs = self._build_input(sale, include_hq_net, retract)
        computed: CommissionResult = generate_ledger_entries(inputs)

        if computed.breakdown.is_over_commissioned:
            logger.warning(
                "negative_net_revenue",
                extra={
                    "net_revenue": computed.breakdown.net_revenue,
                    "sale_amount": sale.sale_amount,
                    "total_commission": computed.breakdown.total_commission,
                },
            )

        deleted = 0
        with self._session.begin_nested():
            if regenerate:
                deleted = self._store.delete_entries(sale.id)
            created = self._store.insert_entries(computed.ledger_entries)
            self._store.update_sale_summary(sale.id, computed.breakdown)

        if regenerate:
            logger.info(
                "ledger_entries_replaced",
                extra={"entries_deleted": deleted, "entries_created": created},
            )

        return SyncResult(
            sale_id=sale.id,
            breakdown=computed.breakdown,
            entries_created=created,
            entries_deleted=deleted,
            regenerated=regenerate,
        )

    def _check_profiles(self, sale: AffiliateSale) -> None:
        if sale.manager_id is not None and sale.manager is None:
            raise ProfileNotFoundError(str(sale.id), str(sale.manager_id), "manager")
        if sale.agent_id is not None and sale.agent is None:
            raise ProfileNotFoundError(str(sale.id), str(sale.agent_id), "agent")

    def _check_status(self, sale: AffiliateSale, operation: str, retract: bool) -> None:
        try:
            status = SaleStatus(sale.status)
        except ValueError:
            raise SaleNotEligibleError(str(sale.id), sale.status, operation) from None

        if retract:
            eligible = status is SaleStatus.CANCELLED
        else:
            eligible = is_ledger_eligible(status)
        if not eligible:
            raise SaleNotEligibleError(str(sale.id), sale.status, operation)

    def _withholding_rate(self, profile: AffiliateProfile | None) -> Decimal:
        if profile is not None and profile.withholding_rate is not None:
            return Decimal(profile.withholding_rate)
        return self._settings.default_withholding_rate

    def _resolve_currency(self, sale: AffiliateSale, required: bool) -> str:
        """
        Normalized product currency, or the configured default per policy.

        An unsupported product currency raises under either policy; only a
        retraction, which books nothing, falls back to the default.
        """
        product_id = str(sale.product_id) if sale.product_id else None
        product = sale.product
        if product is not None and product.currency:
            try:
                return CurrencyRegistry.validate(product.currency)
            except ValueError:
                if required:
                    raise CurrencyNotResolvedError(
                        str(sale.id), product_id, product.currency
                    ) from None
        elif required and self._settings.on_missing_currency is MissingCurrencyPolicy.FAIL:
            raise CurrencyNotResolvedError(str(sale.id), product_id)
        elif required:
            logger.warning(
                "currency_defaulted",
                extra={"product_id": product_id, "currency": self._settings.default_currency},
            )

        try:
            return CurrencyRegistry.validate(self._settings.default_currency)
        except ValueError:
            raise CurrencyNotResolvedError(
                str(sale.id), product_id, self._settings.default_currency
            ) from None

    def _build_input(
        self,
        sale: AffiliateSale,
        include_hq_net: bool,
        retract: bool,
    ) -> CommissionInput:
        # A retraction books nothing, so no currency policy applies to it
        currency = self._resolve_currency(sale, required=not retract)
        context = SaleContext(
            sale_id=sale.id,
            status=sale.status,
            manager_id=sale.manager_id,
            agent_id=sale.agent_id,
            sale_date=sale.sale_date,
            product_code=sale.product_code or (sale.product.product_code if sale.product else None),
        )

        if retract:
            branch = sales = override = _ZERO
        else:
            branch = _amount(sale.branch_commission)
            sales = _amount(sale.sales_commission)
            override = _amount(sale.override_commission)

        manager_rate = self._withholding_rate(sale.manager)

        return CommissionInput(
            sale_id=sale.id,
            sale_amount=_amount(sale.sale_amount),
            cost_amount=_amount(sale.cost_amount),
            currency=currency,
            decimal_places=CurrencyRegistry.get_decimal_places(currency),
            branch_commission=branch,
            sales_commission=sales,
            override_commission=override,
            manager_profile_id=sale.manager_id,
            agent_profile_id=sale.agent_id,
            # The manager of record receives the override
            override_profile_id=sale.manager_id,
            withholding_rate=self._withholding_rate(sale.agent),
            manager_withholding_rate=manager_rate,
            override_withholding_rate=manager_rate,
            include_hq_net=include_hq_net,
            context=context,
        )
