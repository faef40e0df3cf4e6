"""Store backed by the Flask-SQLAlchemy models."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from expenseflow.domain import Company, Employee, ExpenseClaim, PolicyRule
from expenseflow.models import (
    ApprovalRule,
    AuditLog,
    Company as CompanyModel,
    Expense,
    ExpenseApproval,
    ExpenseComment,
    User,
    db,
)
from expenseflow.services.errors import NotFound, ValidationError
from expenseflow.stores.base import AuditTrail, EmployeeDirectory, ExpenseStore, PolicyStore

logger = logging.getLogger(__name__)


class SQLAlchemyStore(ExpenseStore, EmployeeDirectory, PolicyStore, AuditTrail):
    """Maps workflow records onto ORM rows.

    Each mutating call commits its own unit of work and rolls back on failure,
    so an error never leaves a half-written expense behind.
    """

    def __init__(self, session=None) -> None:
        self.session = session or db.session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Database commit failed")
            raise

    # Companies and employees -------------------------------------------------

    def get_company(self, company_id: int) -> Optional[Company]:
        company = self.session.get(CompanyModel, company_id)
        return company.to_record() if company else None

    def get_employee(self, employee_id: int) -> Optional[Employee]:
        user = self.session.get(User, employee_id)
        return user.to_record() if user else None

    def list_employees(self, company_id: int) -> List[Employee]:
        users = User.query.filter_by(company_id=company_id).order_by(User.id).all()
        return [user.to_record() for user in users]

    def add_employee(self, employee: Employee, password: Optional[str] = None) -> Employee:
        first_name, _, last_name = employee.name.partition(" ")
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=(employee.email or "").lower(),
            role=employee.role,
            company_id=employee.company_id,
            manager_id=employee.manager_id,
            is_manager_approver=employee.is_manager_approver,
        )
        user.set_password(password or "")
        self.session.add(user)
        self._commit()
        return user.to_record()

    def save_employee(self, employee: Employee) -> Employee:
        user = self.session.get(User, employee.id)
        if user is None:
            raise NotFound("Employee not found.")
        user.first_name, _, user.last_name = employee.name.partition(" ")
        user.email = (employee.email or "").lower()
        user.role = employee.role
        user.manager_id = employee.manager_id
        user.is_manager_approver = employee.is_manager_approver
        self._commit()
        return user.to_record()

    def remove_employee(self, employee_id: int) -> None:
        user = self.session.get(User, employee_id)
        if user is None:
            return
        self.session.delete(user)
        try:
            self._commit()
        except IntegrityError:
            raise ValidationError("Employee has expense or approval history and cannot be deleted.") from None

    # Policy rules ------------------------------------------------------------

    def list_company_rules(self, company_id: int) -> List[PolicyRule]:
        rules = ApprovalRule.query.filter_by(company_id=company_id).order_by(ApprovalRule.id).all()
        return [rule.to_record() for rule in rules]

    def get_rule(self, rule_id: int) -> Optional[PolicyRule]:
        rule = self.session.get(ApprovalRule, rule_id)
        return rule.to_record() if rule else None

    def add_rule(self, rule: PolicyRule) -> PolicyRule:
        row = ApprovalRule()
        row.apply(rule)
        self.session.add(row)
        self._commit()
        return row.to_record()

    def save_rule(self, rule: PolicyRule) -> PolicyRule:
        row = self.session.get(ApprovalRule, rule.id)
        if row is None:
            raise NotFound("Rule not found.")
        row.apply(rule)
        self._commit()
        return row.to_record()

    def remove_rule(self, rule_id: int) -> None:
        row = self.session.get(ApprovalRule, rule_id)
        if row is None:
            return
        self.session.delete(row)
        self._commit()

    # Expenses ----------------------------------------------------------------

    def add(self, expense: ExpenseClaim) -> ExpenseClaim:
        row = Expense(
            company_id=expense.company_id,
            submitter_user_id=expense.submitter_id,
            amount_original=expense.amount_original,
            currency_original=expense.currency_original,
            amount_in_company_currency=expense.amount_in_company_currency,
            company_currency=expense.company_currency,
            conversion_degraded=expense.conversion_degraded,
            category=expense.category,
            description=expense.description,
            merchant=expense.merchant,
            receipt_path=expense.receipt_path,
            date_spent=expense.date_spent,
            status=expense.status,
            approval_flow=[step.to_dict() for step in expense.approval_flow],
            current_step_index=expense.current_step_index,
        )
        if expense.created_at is not None:
            row.created_at = expense.created_at
        self.session.add(row)
        self._commit()
        expense.id = row.id
        expense.created_at = row.created_at
        return expense

    def load(self, expense_id: int, for_update: bool = False) -> Optional[ExpenseClaim]:
        query = Expense.query.filter_by(id=expense_id)
        if for_update:
            # Row lock for databases that support it; a no-op on SQLite.
            query = query.with_for_update(of=Expense)
        row = query.populate_existing().first()
        return row.to_record() if row else None

    def persist(self, expense: ExpenseClaim) -> None:
        row = self.session.get(Expense, expense.id)
        if row is None:
            raise NotFound("Expense not found.")

        row.status = expense.status
        row.current_step_index = expense.current_step_index
        # Reassign so the JSON column is flagged dirty.
        row.approval_flow = [step.to_dict() for step in expense.approval_flow]

        for decision in expense.decisions[len(row.approvals):]:
            row.approvals.append(
                ExpenseApproval(
                    approver_user_id=decision.actor_id,
                    approver_name=decision.actor_name,
                    step_number=decision.step_number,
                    status=decision.action,
                    comment=decision.comment,
                    acted_at=decision.timestamp,
                )
            )
        for comment in expense.comments[len(row.comments):]:
            row.comments.append(
                ExpenseComment(
                    user_id=comment.user_id,
                    user_name=comment.user_name,
                    comment=comment.comment,
                    created_at=comment.timestamp,
                )
            )
        self._commit()

    def list_by_submitter(self, submitter_id: int) -> List[ExpenseClaim]:
        rows = (
            Expense.query.filter_by(submitter_user_id=submitter_id)
            .order_by(Expense.created_at.desc(), Expense.id.desc())
            .all()
        )
        return [row.to_record() for row in rows]

    def list_by_company(self, company_id: int, status=None) -> List[ExpenseClaim]:
        query = Expense.query.filter_by(company_id=company_id)
        if status is not None:
            query = query.filter_by(status=status)
        rows = query.order_by(Expense.created_at.desc(), Expense.id.desc()).all()
        return [row.to_record() for row in rows]

    # Audit -------------------------------------------------------------------

    def record(
        self,
        entity_type: str,
        entity_id: int,
        user_id: Optional[int],
        action: str,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.session.add(
            AuditLog(
                entity_type=entity_type,
                entity_id=entity_id,
                user_id=user_id,
                action=action,
                extra_data=extra_data,
            )
        )
        self._commit()
