"""Approval routing and workflow engine.

``ApprovalEngine`` is the single entry point for submitting expenses,
recording decisions and reading the approval queues. It owns no storage of
its own: stores, the currency converter and the clock are injected.

Mutations of one expense run under that expense's lock (load, apply,
persist); unrelated expenses never wait on each other.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

from expenseflow.domain import (
    Employee,
    ExpenseClaim,
    ExpenseDraft,
    ExpenseStatus,
)
from expenseflow.services.errors import (
    CurrencyConversionError,
    NoPendingStep,
    NotFound,
    Unauthorized,
    ValidationError,
)
from expenseflow.services.flow_builder import build_flow
from expenseflow.services.locks import KeyedLock
from expenseflow.services.workflow_executor import record_approval, record_rejection
from expenseflow.stores.base import EmployeeDirectory, ExpenseStore, PolicyStore

logger = logging.getLogger(__name__)

Converter = Callable[[Decimal, str, str], Decimal]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_expense_payload(payload: Dict[str, Any]) -> ExpenseDraft:
    """Validate raw submission fields into an ``ExpenseDraft``."""
    required_fields = {"amount", "currency", "category", "date_spent"}
    if missing := required_fields - {key for key, value in payload.items() if value not in (None, "")}:
        raise ValidationError(f"Missing fields: {', '.join(sorted(missing))}")

    try:
        amount = Decimal(str(payload["amount"]))
    except (InvalidOperation, TypeError):
        raise ValidationError("Invalid amount.") from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero.")

    date_spent = payload["date_spent"]
    if not isinstance(date_spent, date):
        try:
            date_spent = date.fromisoformat(str(date_spent))
        except ValueError:
            raise ValidationError("Invalid 'date_spent' format. Use YYYY-MM-DD.") from None

    return ExpenseDraft(
        amount=amount,
        currency=str(payload["currency"]).upper(),
        category=str(payload["category"]),
        date_spent=date_spent,
        description=payload.get("description") or None,
        merchant=payload.get("merchant") or None,
        receipt_path=payload.get("receipt_path") or None,
    )


class ApprovalEngine:
    def __init__(
        self,
        expenses: ExpenseStore,
        directory: EmployeeDirectory,
        policies: PolicyStore,
        converter: Optional[Converter] = None,
        locks: Optional[KeyedLock] = None,
        clock: Clock = utcnow,
        enforce_step_approvers: bool = False,
    ) -> None:
        self.expenses = expenses
        self.directory = directory
        self.policies = policies
        self.converter = converter
        self.locks = locks or KeyedLock()
        self.clock = clock
        self.enforce_step_approvers = enforce_step_approvers

    # Submission --------------------------------------------------------------

    def convert_amount(self, amount: Decimal, source: str, target: str) -> tuple[Decimal, bool]:
        """Return ``(amount_in_target, degraded)``; failures keep the original amount."""
        if source.upper() == target.upper():
            return amount, False
        if self.converter is None:
            logger.warning("No currency converter configured; keeping %s %s unconverted", amount, source)
            return amount, True
        try:
            return Decimal(self.converter(amount, source, target)), False
        except CurrencyConversionError as exc:
            logger.warning("Currency conversion %s->%s degraded: %s", source, target, exc)
            return amount, True
        except Exception:
            # Timeouts and malformed payloads from the converter degrade the same way.
            logger.warning("Currency converter failed for %s->%s", source, target, exc_info=True)
            return amount, True

    def submit(self, submitter: Employee, draft: ExpenseDraft) -> ExpenseClaim:
        company = self.directory.get_company(submitter.company_id)
        if company is None:
            raise NotFound("Company not found.")

        # Conversion may block on the network, so it happens before the
        # expense (and its lock) exists.
        converted, degraded = self.convert_amount(draft.amount, draft.currency, company.currency_code)

        expense = ExpenseClaim(
            company_id=company.id,
            submitter_id=submitter.id,
            submitter_name=submitter.name,
            amount_original=draft.amount,
            currency_original=draft.currency,
            amount_in_company_currency=converted,
            company_currency=company.currency_code,
            conversion_degraded=degraded,
            category=draft.category,
            description=draft.description,
            merchant=draft.merchant,
            receipt_path=draft.receipt_path,
            date_spent=draft.date_spent,
            created_at=self.clock(),
        )

        rules = self.policies.list_company_rules(company.id)
        expense.approval_flow = build_flow(expense, submitter, rules, self.directory.get_employee)
        if not expense.approval_flow:
            # Nothing to route through: the empty flow is already exhausted.
            expense.status = ExpenseStatus.APPROVED

        expense = self.expenses.add(expense)
        logger.info(
            "Expense %s submitted by user %s with %d approval step(s)",
            expense.id,
            submitter.id,
            len(expense.approval_flow),
        )
        return expense

    # Decisions ---------------------------------------------------------------

    def _check_step_approver(self, expense: ExpenseClaim, actor: Employee) -> None:
        step = expense.active_step
        if step is None:
            raise NoPendingStep(f"Expense {expense.id} has no pending approval step.")
        if self.enforce_step_approvers and not step.names(actor.id):
            raise Unauthorized("You are not an approver for the current step.")

    def _load_locked(self, expense_id: int) -> ExpenseClaim:
        expense = self.expenses.load(expense_id, for_update=True)
        if expense is None:
            raise NotFound("Expense not found.")
        return expense

    def approve(self, expense_id: int, actor: Employee, comment: Optional[str] = None) -> ExpenseClaim:
        with self.locks.hold(expense_id):
            expense = self._load_locked(expense_id)
            self._check_step_approver(expense, actor)
            record_approval(expense, actor, comment, self.clock())
            self.expenses.persist(expense)

        logger.info(
            "Expense %s approved by user %s (step %d/%d, status %s)",
            expense.id,
            actor.id,
            expense.current_step_index,
            len(expense.approval_flow),
            expense.status.value,
        )
        return expense

    def reject(self, expense_id: int, actor: Employee, comment: Optional[str] = None) -> ExpenseClaim:
        with self.locks.hold(expense_id):
            expense = self._load_locked(expense_id)
            self._check_step_approver(expense, actor)
            record_rejection(expense, actor, comment, self.clock())
            self.expenses.persist(expense)

        logger.info("Expense %s rejected by user %s", expense.id, actor.id)
        return expense

    # Views -------------------------------------------------------------------

    def get_expense(self, expense_id: int) -> ExpenseClaim:
        expense = self.expenses.load(expense_id)
        if expense is None:
            raise NotFound("Expense not found.")
        return expense

    def my_submissions(self, actor: Employee) -> List[ExpenseClaim]:
        return self.expenses.list_by_submitter(actor.id)

    def pending_for(self, actor: Employee) -> List[ExpenseClaim]:
        """Pending expenses whose active step names ``actor``."""
        pending = self.expenses.list_by_company(actor.company_id, status=ExpenseStatus.PENDING)
        return [
            expense
            for expense in pending
            if expense.active_step is not None and expense.active_step.names(actor.id)
        ]

    def company_ledger(self, actor: Employee) -> List[ExpenseClaim]:
        if not actor.is_admin:
            raise Unauthorized("Only admins can view all expenses.")
        return self.expenses.list_by_company(actor.company_id)
