"""
Pytest fixtures for the commission kernel test suite.

Provides:
- A session-scoped engine with the schema created once
- Per-test sessions isolated by an outer transaction that is rolled back
- Real-commit sessions for concurrency tests (rows deleted at teardown)
- Factories for profiles, products and sales
- Structured log capture

Environment Variables:
- DATABASE_URL: database to test against.  If not set, a SQLite file in the
  pytest temp directory is used.
"""

import json
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from types import SimpleNamespace
from typing import Generator

import pytest
from sqlalchemy import delete
from sqlalchemy.orm import Session

from commission_config.schema import CommissionSettings, MissingCurrencyPolicy
from commission_kernel.db.base import Base
from commission_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from commission_kernel.domain.clock import DeterministicClock
from commission_kernel.domain.sale_lifecycle import SaleStatus
from commission_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from commission_kernel.models.affiliate import (
    AffiliateProduct,
    AffiliateProfile,
    AffiliateSale,
    ProfileType,
)
from commission_kernel.services.ledger_synchronizer import LedgerSynchronizer
from commission_kernel.services.sale_locks import SaleLockRegistry


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "postgres: mark test as requiring PostgreSQL")
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture commission_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, synchronizer, sale):
            synchronizer.sync_sale_commission_ledgers(sale.id)
            logs = captured_logs()
            assert any(r["message"] == "ledger_sync_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("commission_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Session-scoped DB infrastructure (engine + tables once per suite)
# =============================================================================


def get_database_url(tmp_dir) -> str:
    """DATABASE_URL if set, else a SQLite file under the pytest temp dir."""
    url = os.environ.get("DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{tmp_dir / 'commission_kernel_test.db'}"


@pytest.fixture(scope="session")
def db_engine(tmp_path_factory):
    """Single engine for the entire test session."""
    db_url = get_database_url(tmp_path_factory.mktemp("db"))
    eng = init_engine_from_url(db_url, echo=False, pool_size=30, max_overflow=20, pool_timeout=10)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables()
    create_tables()
    yield
    drop_tables()


def _delete_all_rows(engine) -> None:
    """Remove every row, children first.  Used after real-commit tests."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(delete(table))


# =============================================================================
# Per-test session with automatic rollback
# =============================================================================


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection.  Any
    ``session.commit()`` inside the test only releases a savepoint; at
    teardown the outer transaction is rolled back, undoing all changes.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


@pytest.fixture(scope="function")
def committed_session_factory(db_engine, db_tables):
    """Session factory whose commits are real.  All rows deleted at teardown."""
    yield get_session_factory()
    _delete_all_rows(db_engine)


# =============================================================================
# Kernel collaborators
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 15, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> CommissionSettings:
    return CommissionSettings()


@pytest.fixture
def lenient_settings() -> CommissionSettings:
    """Settings that book currency-less products in the default currency."""
    return CommissionSettings(on_missing_currency=MissingCurrencyPolicy.DEFAULT)


@pytest.fixture
def lock_registry() -> SaleLockRegistry:
    return SaleLockRegistry()


@pytest.fixture
def make_synchronizer(session, settings, deterministic_clock, lock_registry):
    """Build a LedgerSynchronizer on the test session; keyword overrides allowed."""

    def _make(**overrides) -> LedgerSynchronizer:
        kwargs = {
            "settings": settings,
            "clock": deterministic_clock,
            "locks": lock_registry,
            "auto_commit": True,
        }
        kwargs.update(overrides)
        return LedgerSynchronizer(session, **kwargs)

    return _make


@pytest.fixture
def synchronizer(make_synchronizer) -> LedgerSynchronizer:
    return make_synchronizer()


# =============================================================================
# Data factories
# =============================================================================


def _create_profile(
    sess: Session,
    profile_type: ProfileType = ProfileType.SALES_AGENT,
    withholding_rate: Decimal | None = None,
    display_name: str | None = None,
) -> AffiliateProfile:
    profile = AffiliateProfile(
        profile_type=profile_type.value,
        display_name=display_name or profile_type.value.lower(),
        withholding_rate=withholding_rate,
    )
    sess.add(profile)
    sess.commit()
    return profile


def _create_product(
    sess: Session,
    currency: str | None = "KRW",
    product_code: str = "CRUISE-7N",
) -> AffiliateProduct:
    product = AffiliateProduct(product_code=product_code, title="Cruise", currency=currency)
    sess.add(product)
    sess.commit()
    return product


def _create_sale(
    sess: Session,
    sale_amount: Decimal,
    cost_amount: Decimal = Decimal("0"),
    branch_commission: Decimal | None = None,
    sales_commission: Decimal | None = None,
    override_commission: Decimal | None = None,
    manager: AffiliateProfile | None = None,
    agent: AffiliateProfile | None = None,
    product: AffiliateProduct | None = None,
    status: SaleStatus = SaleStatus.CONFIRMED,
    sale_date: datetime | None = None,
) -> AffiliateSale:
    sale = AffiliateSale(
        sale_amount=sale_amount,
        cost_amount=cost_amount,
        branch_commission=branch_commission,
        sales_commission=sales_commission,
        override_commission=override_commission,
        manager_id=manager.id if manager else None,
        agent_id=agent.id if agent else None,
        product_id=product.id if product else None,
        product_code=product.product_code if product else None,
        status=status.value,
        sale_date=sale_date or datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    sess.add(sale)
    sess.commit()
    return sale


@pytest.fixture
def make_profile(session):
    def _make(**kwargs) -> AffiliateProfile:
        return _create_profile(session, **kwargs)

    return _make


@pytest.fixture
def make_product(session):
    def _make(**kwargs) -> AffiliateProduct:
        return _create_product(session, **kwargs)

    return _make


@pytest.fixture
def make_sale(session):
    def _make(**kwargs) -> AffiliateSale:
        return _create_sale(session, **kwargs)

    return _make


@pytest.fixture
def manager(make_profile) -> AffiliateProfile:
    return make_profile(profile_type=ProfileType.BRANCH_MANAGER, display_name="Branch Busan")


@pytest.fixture
def agent(make_profile) -> AffiliateProfile:
    return make_profile(profile_type=ProfileType.SALES_AGENT, display_name="Agent Kim")


@pytest.fixture
def krw_product(make_product) -> AffiliateProduct:
    return make_product(currency="KRW")


@pytest.fixture
def standard_sale(make_sale, manager, agent, krw_product) -> AffiliateSale:
    """1,000,000 KRW sale: cost 600,000, branch 50,000, sales 70,000, override 10,000."""
    return make_sale(
        sale_amount=Decimal("1000000"),
        cost_amount=Decimal("600000"),
        branch_commission=Decimal("50000"),
        sales_commission=Decimal("70000"),
        override_commission=Decimal("10000"),
        manager=manager,
        agent=agent,
        product=krw_product,
    )


@pytest.fixture
def seed():
    """Factories taking an explicit session, for tests with their own sessions."""
    return SimpleNamespace(profile=_create_profile, product=_create_product, sale=_create_sale)
