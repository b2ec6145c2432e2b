"""
Typed exception hierarchy for the commission kernel.

Every error raised by the kernel is a subclass of CommissionKernelError and
carries:
  - a ``code`` class attribute (machine-readable, API-safe)
  - a ``retryable`` class attribute telling a job scheduler whether the same
    call may succeed later without any input changing
  - structured attributes instead of a message the caller has to parse

Hierarchy:

    CommissionKernelError (base)
    |
    +-- NotFoundError
    |   +-- SaleNotFoundError
    |   +-- ProfileNotFoundError
    |
    +-- InvalidStateError
    |   +-- SaleNotEligibleError
    |   +-- InvalidTransitionError
    |
    +-- ComputationError
    |   +-- CurrencyNotResolvedError
    |
    +-- PersistenceError

Codes:

Category     | Code                    | When Raised
-------------|-------------------------|------------------------------------------
Not found    | SALE_NOT_FOUND          | Sale ID doesn't exist
             | PROFILE_NOT_FOUND       | Sale references a missing manager/agent
-------------|-------------------------|------------------------------------------
State        | SALE_NOT_ELIGIBLE       | Sale status doesn't allow the operation
             | INVALID_TRANSITION      | Lifecycle transition not permitted
-------------|-------------------------|------------------------------------------
Computation  | COMPUTATION_ERROR       | Malformed numeric input (field is named)
             | CURRENCY_NOT_RESOLVED   | No currency on the product, policy = fail
-------------|-------------------------|------------------------------------------
Persistence  | PERSISTENCE_ERROR       | Commit failed, connection lost, or an
             |                         | unexpected constraint violation

Handling:

    try:
        synchronizer.sync_sale_commission_ledgers(sale_id, regenerate=True)
    except NotFoundError:
        drop_job()                 # permanent
    except CommissionKernelError as e:
        if e.retryable:
            requeue_job()
        else:
            raise
"""


class CommissionKernelError(Exception):
    """
    Base exception for all commission kernel errors.

    All subclasses must set a ``code`` class attribute.
    """

    code: str = "COMMISSION_KERNEL_ERROR"
    retryable: bool = False


# Not found


class NotFoundError(CommissionKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class SaleNotFoundError(NotFoundError):
    """Sale with given ID was not found."""

    code: str = "SALE_NOT_FOUND"

    def __init__(self, sale_id: str):
        self.sale_id = sale_id
        super().__init__(f"Sale not found: {sale_id}")


class ProfileNotFoundError(NotFoundError):
    """A sale references a manager or agent profile that does not exist."""

    code: str = "PROFILE_NOT_FOUND"

    def __init__(self, sale_id: str, profile_id: str, role: str):
        self.sale_id = sale_id
        self.profile_id = profile_id
        self.role = role
        super().__init__(
            f"Sale {sale_id} references missing {role} profile {profile_id}"
        )


# State


class InvalidStateError(CommissionKernelError):
    """Base exception for lifecycle state violations."""

    code: str = "INVALID_STATE"


class SaleNotEligibleError(InvalidStateError):
    """Sale status does not allow the requested ledger operation."""

    code: str = "SALE_NOT_ELIGIBLE"

    def __init__(self, sale_id: str, status: str, operation: str):
        self.sale_id = sale_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Sale {sale_id} in status {status} is not eligible for {operation}"
        )


class InvalidTransitionError(InvalidStateError):
    """Sale lifecycle transition is not permitted."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot transition sale from {from_status} to {to_status}")


# Computation


class ComputationError(CommissionKernelError):
    """The commission formula received inconsistent numeric input."""

    code: str = "COMPUTATION_ERROR"

    def __init__(self, field: str, reason: str, value: str | None = None):
        self.field = field
        self.reason = reason
        self.value = value
        detail = f" (got {value})" if value is not None else ""
        super().__init__(f"Invalid {field}: {reason}{detail}")


class CurrencyNotResolvedError(ComputationError):
    """No supported currency can be resolved for the sale's product."""

    code: str = "CURRENCY_NOT_RESOLVED"

    def __init__(self, sale_id: str, product_id: str | None, currency: str | None = None):
        self.sale_id = sale_id
        self.product_id = product_id
        self.currency = currency
        if currency is None:
            reason = f"no currency on product {product_id} for sale {sale_id}"
        else:
            reason = f"unsupported currency on product {product_id} for sale {sale_id}"
        super().__init__(field="currency", reason=reason, value=currency)


# Persistence


class PersistenceError(CommissionKernelError):
    """
    The ledger store failed to read or commit.

    Retryable: the previous ledger state is intact, so the caller may run the
    same call again.
    """

    code: str = "PERSISTENCE_ERROR"
    retryable: bool = True

    def __init__(self, sale_id: str, operation: str, reason: str):
        self.sale_id = sale_id
        self.operation = operation
        self.reason = reason
        super().__init__(f"Ledger {operation} failed for sale {sale_id}: {reason}")
