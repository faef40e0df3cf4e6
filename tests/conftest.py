"""
Pytest fixtures for the approval workflow test suite.

Provides:
- an InMemoryStore seeded with one company and its people
- an ApprovalEngine over that store with a deterministic clock
- a Flask app on SQLite in-memory for store and route tests
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List

import pytest

from expenseflow.domain import Approver, ApprovalRuleType, Employee, ExpenseDraft, PolicyRule, UserRole
from expenseflow.services.approval_engine import ApprovalEngine
from expenseflow.services.errors import CurrencyConversionError
from expenseflow.services.policy_service import PolicyService
from expenseflow.stores.memory import InMemoryStore


class DeterministicClock:
    def __init__(self, start: datetime = datetime(2025, 10, 4, 9, 0, tzinfo=timezone.utc)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


class StubConverter:
    """Multiplies by a fixed rate per (source, target); unknown pairs fail."""

    def __init__(self, rates: Dict[tuple, str] | None = None) -> None:
        self.rates = rates or {("EUR", "USD"): "1.10"}
        self.calls: List[tuple] = []

    def __call__(self, amount, source, target):
        self.calls.append((amount, source, target))
        rate = self.rates.get((source, target))
        if rate is None:
            raise CurrencyConversionError(f"no rate {source}->{target}")
        return (Decimal(amount) * Decimal(rate)).quantize(Decimal("0.01"))


@dataclass
class People:
    admin: Employee
    manager: Employee
    employee: Employee
    approvers: List[Employee]
    loner: Employee


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def converter() -> StubConverter:
    return StubConverter()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def company(store):
    return store.add_company("Acme", "USD", country="United States")


@pytest.fixture
def people(store, company) -> People:
    def add(name, role=UserRole.EMPLOYEE, **extra):
        return store.add_employee(
            Employee(id=0, company_id=company.id, name=name, role=role, email=f"{name.lower()}@acme.test", **extra)
        )

    admin = add("Ada", UserRole.ADMIN)
    manager = add("Marta", UserRole.MANAGER)
    approvers = [add("Finn", UserRole.MANAGER), add("Cleo", UserRole.MANAGER), add("Dev", UserRole.MANAGER)]
    employee = add("Eli", manager_id=manager.id, is_manager_approver=True)
    loner = add("Lou")
    return People(admin=admin, manager=manager, employee=employee, approvers=approvers, loner=loner)


@pytest.fixture
def engine(store, converter, clock) -> ApprovalEngine:
    return ApprovalEngine(expenses=store, directory=store, policies=store, converter=converter, clock=clock)


@pytest.fixture
def policy_service(store) -> PolicyService:
    return PolicyService(policies=store, directory=store, audit=store)


@pytest.fixture
def draft() -> ExpenseDraft:
    return ExpenseDraft(
        amount=Decimal("120.00"),
        currency="USD",
        category="Meals",
        date_spent=date(2025, 10, 1),
        description="Client dinner",
        merchant="Sample Restaurant",
    )


def make_rule(store, company, approvers, rule_type=ApprovalRuleType.UNANIMOUS, **extra) -> PolicyRule:
    """Insert a rule straight into the store, bypassing admin validation."""
    return store.add_rule(
        PolicyRule(
            id=None,
            company_id=company.id,
            name=extra.pop("name", f"{rule_type.value.title()} rule"),
            rule_type=rule_type,
            approvers=tuple(Approver(a.id, a.name) for a in approvers),
            **extra,
        )
    )


@pytest.fixture
def add_rule(store, company):
    def factory(approvers, rule_type=ApprovalRuleType.UNANIMOUS, **extra):
        return make_rule(store, company, approvers, rule_type, **extra)

    return factory


# Flask -----------------------------------------------------------------------


@pytest.fixture
def app():
    from expenseflow import create_app, db

    app = create_app("testing")
    app.extensions["currency_converter"] = StubConverter()
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_context(app):
    """App context for direct database access; ``client`` requests push their own."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()
