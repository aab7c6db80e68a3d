"""
Configuration for pytest.

This module provides fixtures and configuration for running tests.
"""

import os

os.environ["ENVIRONMENT"] = "testing"
os.environ["ENABLE_CACHE"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from allocation_engine.clients import BudgetRecord, EntityRecord, SpendFigures
from allocation_engine.core.deps import (
    get_budget_service,
    get_entity_service,
    get_ledger_service,
)
from allocation_engine.core.exceptions import (
    LedgerUnavailableError,
    NotFoundError,
    ReferenceDataError,
)
from allocation_engine.db.session import get_db
from allocation_engine.main import app
from allocation_engine.models.base import Base

TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeBudgetService:
    """In-memory budget service."""

    def __init__(self) -> None:
        self.budgets: Dict[str, BudgetRecord] = {}
        self.unavailable = False

    def add(self, budget_id: str, name: str, amount, spent_amount=None) -> BudgetRecord:
        record = BudgetRecord(
            budget_id=budget_id,
            name=name,
            amount=Decimal(str(amount)),
            spent_amount=Decimal(str(spent_amount)) if spent_amount is not None else None,
        )
        self.budgets[budget_id] = record
        return record

    async def get_budget(self, budget_id: str) -> BudgetRecord:
        if self.unavailable:
            raise ReferenceDataError("Budget service unavailable")
        if budget_id not in self.budgets:
            raise NotFoundError(f"Budget not found: {budget_id}")
        return self.budgets[budget_id]


class FakeEntityService:
    """In-memory entity service keyed by dimension."""

    def __init__(self) -> None:
        self.entities: Dict[str, List[EntityRecord]] = {}
        self.calls: List[Tuple[str, Optional[dict]]] = []

    def set(self, dimension: str, *entities: Tuple[str, str, Optional[str]]) -> None:
        self.entities[dimension] = [
            EntityRecord(
                entity_id=entity_id,
                name=name,
                prior_year_amount=Decimal(prior) if prior is not None else None,
            )
            for entity_id, name, prior in entities
        ]

    async def list_entities(self, dimension: str, filters: Optional[dict] = None) -> List[EntityRecord]:
        self.calls.append((dimension, filters))
        return list(self.entities.get(dimension, []))


class FakeLedgerService:
    """In-memory ledger keyed by entity name. Unknown names have no spend."""

    def __init__(self) -> None:
        self.figures: Dict[str, SpendFigures] = {}
        self.failing: set = set()
        self.calls = 0

    def set(self, name: str, utilized, committed="0") -> None:
        self.figures[name] = SpendFigures(
            utilized=Decimal(str(utilized)),
            committed=Decimal(str(committed)),
        )

    async def get_spend_and_commitments(self, dimension_type, dimension_name, date_range) -> SpendFigures:
        self.calls += 1
        if dimension_name in self.failing:
            raise LedgerUnavailableError(f"Ledger unavailable for {dimension_name}")
        return self.figures.get(dimension_name, SpendFigures(Decimal("0"), Decimal("0")))


@pytest.fixture
async def test_engine():
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def budget_service() -> FakeBudgetService:
    service = FakeBudgetService()
    service.add("B-100", "FY26 Trade Spend", "100000.00", spent_amount="12500.00")
    return service


@pytest.fixture
def entity_service() -> FakeEntityService:
    service = FakeEntityService()
    service.set(
        "customer",
        ("C1", "Acme", "200.00"),
        ("C2", "Globex", "600.00"),
        ("C3", "Initech", "1200.00"),
    )
    service.set("channel", ("CH1", "Retail", None), ("CH2", "Online", None))
    return service


@pytest.fixture
def ledger_service() -> FakeLedgerService:
    return FakeLedgerService()


@pytest.fixture
async def async_client(db_session, budget_service, entity_service, ledger_service):
    """Create an async test client."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_budget_service] = lambda: budget_service
    app.dependency_overrides[get_entity_service] = lambda: entity_service
    app.dependency_overrides[get_ledger_service] = lambda: ledger_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
