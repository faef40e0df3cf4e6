"""SQLAlchemyStore against SQLite in-memory."""
from decimal import Decimal

import pytest

from expenseflow import db
from expenseflow.domain import (
    ApprovalDecisionStatus,
    ApprovalRuleType,
    Approver,
    DirectStep,
    Employee,
    ExpenseStatus,
    PolicyRule,
    RuleStep,
    UserRole,
)
from expenseflow.models import AuditLog, Company, User
from expenseflow.services.approval_engine import ApprovalEngine
from expenseflow.services.errors import NoPendingStep
from expenseflow.stores.sql import SQLAlchemyStore


@pytest.fixture
def sql_store(app_context):
    return SQLAlchemyStore()


@pytest.fixture
def seeded(sql_store):
    company = Company(name="Acme", currency_code="USD", country="United States")
    db.session.add(company)
    db.session.commit()

    def add(name, role=UserRole.EMPLOYEE, **extra):
        email = f"{name.split()[0].lower()}@acme.test"
        return sql_store.add_employee(
            Employee(id=0, company_id=company.id, name=name, role=role, email=email, **extra), password="pw"
        )

    manager = add("Marta Ruiz", UserRole.MANAGER)
    approvers = [add("Finn Hale", UserRole.MANAGER), add("Cleo Park", UserRole.MANAGER)]
    employee = add("Eli Stone", manager_id=manager.id, is_manager_approver=True)
    return company, manager, approvers, employee


@pytest.fixture
def sql_engine(sql_store, converter, clock):
    return ApprovalEngine(
        expenses=sql_store, directory=sql_store, policies=sql_store, converter=converter, clock=clock
    )


def test_employees_round_trip(sql_store, seeded):
    company, manager, _, employee = seeded

    assert employee.name == "Eli Stone"
    assert employee.manager_id == manager.id
    assert sql_store.get_employee(employee.id) == employee
    assert sql_store.get_company(company.id).currency_code == "USD"
    assert db.session.get(User, employee.id).check_password("pw")
    assert [e.name for e in sql_store.list_employees(company.id)][:1] == ["Marta Ruiz"]


def test_rules_round_trip_in_insertion_order(sql_store, seeded):
    company, _, approvers, _ = seeded
    first = sql_store.add_rule(
        PolicyRule(
            id=None,
            company_id=company.id,
            name="Finance",
            rule_type=ApprovalRuleType.PERCENTAGE,
            sequence=2,
            approvers=tuple(Approver(a.id, a.name) for a in approvers),
            percentage=Decimal("50"),
        )
    )
    second = sql_store.add_rule(
        PolicyRule(id=None, company_id=company.id, name="Board", rule_type=ApprovalRuleType.UNANIMOUS, sequence=1)
    )

    assert [rule.id for rule in sql_store.list_company_rules(company.id)] == [first.id, second.id]
    assert first.percentage == Decimal("50")
    assert first.approvers[1].approver_name == "Cleo Park"

    sql_store.remove_rule(second.id)
    assert sql_store.get_rule(second.id) is None


def test_decisions_and_comments_are_persisted(sql_store, sql_engine, seeded, draft):
    company, manager, approvers, employee = seeded
    sql_store.add_rule(
        PolicyRule(
            id=None,
            company_id=company.id,
            name="Finance",
            rule_type=ApprovalRuleType.PERCENTAGE,
            approvers=tuple(Approver(a.id, a.name) for a in approvers),
            percentage=Decimal("100"),
        )
    )

    expense = sql_engine.submit(employee, draft)
    sql_engine.approve(expense.id, manager, "ok from me")
    sql_engine.approve(expense.id, approvers[0])
    db.session.expire_all()

    stored = sql_store.load(expense.id)
    assert isinstance(stored.approval_flow[0], DirectStep)
    assert isinstance(stored.approval_flow[1], RuleStep)
    assert stored.approval_flow[1].approval_count == 1
    assert stored.current_step_index == 1
    assert [d.actor_id for d in stored.decisions] == [manager.id, approvers[0].id]
    assert stored.decisions[0].step_number == 1
    assert [c.comment for c in stored.comments] == ["ok from me"]
    assert stored.submitter_name == "Eli Stone"

    sql_engine.reject(expense.id, approvers[1], "over budget")
    db.session.expire_all()

    stored = sql_store.load(expense.id, for_update=True)
    assert stored.status is ExpenseStatus.REJECTED
    assert stored.decisions[-1].action is ApprovalDecisionStatus.REJECTED
    assert len(stored.comments) == 2

    with pytest.raises(NoPendingStep):
        sql_engine.approve(expense.id, approvers[0])
    db.session.expire_all()
    assert len(sql_store.load(expense.id).decisions) == 3


def test_listing_queries(sql_store, sql_engine, seeded, draft):
    company, manager, _, employee = seeded
    expense = sql_engine.submit(employee, draft)
    sql_engine.submit(manager, draft)

    assert [e.id for e in sql_store.list_by_submitter(employee.id)] == [expense.id]
    assert len(sql_store.list_by_company(company.id)) == 2
    # The manager has no manager, so their own claim is approved on submission.
    assert [e.id for e in sql_store.list_by_company(company.id, status=ExpenseStatus.PENDING)] == [expense.id]


def test_audit_rows(sql_store, seeded):
    _, manager, _, _ = seeded
    sql_store.record("approval_rule", 7, manager.id, "created", {"name": "Finance"})

    row = AuditLog.query.one()
    assert row.to_dict()["extra_data"] == {"name": "Finance"}
    assert row.user_id == manager.id


def test_employee_update_and_delete(sql_store, seeded):
    from dataclasses import replace

    company, manager, approvers, employee = seeded

    moved = sql_store.save_employee(replace(employee, name="Eli Stone-Hale", manager_id=approvers[0].id))
    db.session.expire_all()
    assert sql_store.get_employee(employee.id) == moved
    assert db.session.get(User, employee.id).last_name == "Stone-Hale"

    sql_store.remove_employee(approvers[1].id)
    assert sql_store.get_employee(approvers[1].id) is None
    assert len(sql_store.list_employees(company.id)) == 3


def test_employee_with_submissions_cannot_be_deleted(sql_store, sql_engine, seeded, draft):
    from expenseflow.services.errors import ValidationError

    _, _, _, employee = seeded
    sql_engine.submit(employee, draft)

    with pytest.raises(ValidationError, match="history"):
        sql_store.remove_employee(employee.id)
    assert sql_store.get_employee(employee.id) is not None
