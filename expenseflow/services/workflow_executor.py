"""Applies approve/reject decisions to a single expense.

Callers hold the expense's lock and persist the result; these functions only
mutate the in-memory claim, and they validate before touching it.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from expenseflow.domain import (
    ApprovalDecisionStatus,
    Comment,
    Decision,
    DirectStep,
    Employee,
    ExpenseClaim,
    ExpenseStatus,
    RuleStep,
    StepStatus,
    is_satisfied,
)
from expenseflow.services.errors import NoPendingStep


def _require_active_step(expense: ExpenseClaim):
    step = expense.active_step
    if step is None:
        raise NoPendingStep(f"Expense {expense.id} has no pending approval step.")
    return step


def _append_comment(expense: ExpenseClaim, actor: Employee, comment: Optional[str], at: datetime) -> None:
    if comment:
        expense.comments.append(Comment(user_id=actor.id, user_name=actor.name, comment=comment, timestamp=at))


def record_approval(
    expense: ExpenseClaim,
    actor: Employee,
    comment: Optional[str],
    at: datetime,
) -> ExpenseClaim:
    step = _require_active_step(expense)

    decision = Decision(
        actor_id=actor.id,
        actor_name=actor.name,
        action=ApprovalDecisionStatus.APPROVED,
        comment=comment,
        timestamp=at,
        step_number=step.sequence,
    )
    expense.decisions.append(decision)

    if isinstance(step, RuleStep):
        step.approval_count += 1
        if is_satisfied(step, decision):
            step.status = StepStatus.APPROVED
            expense.current_step_index += 1
    elif isinstance(step, DirectStep):
        step.status = StepStatus.APPROVED
        expense.current_step_index += 1

    if expense.current_step_index == len(expense.approval_flow):
        expense.status = ExpenseStatus.APPROVED

    _append_comment(expense, actor, comment, at)
    return expense


def record_rejection(
    expense: ExpenseClaim,
    actor: Employee,
    comment: Optional[str],
    at: datetime,
) -> ExpenseClaim:
    """Reject outright; accumulated approvals on the active step do not count."""
    step = _require_active_step(expense)

    expense.status = ExpenseStatus.REJECTED
    step.status = StepStatus.REJECTED
    expense.decisions.append(
        Decision(
            actor_id=actor.id,
            actor_name=actor.name,
            action=ApprovalDecisionStatus.REJECTED,
            comment=comment,
            timestamp=at,
            step_number=step.sequence,
        )
    )

    _append_comment(expense, actor, comment, at)
    return expense
