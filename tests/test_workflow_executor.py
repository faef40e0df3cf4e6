"""Decision recording on a single expense, without storage."""
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from expenseflow.domain import (
    ApprovalDecisionStatus,
    ApprovalRuleType,
    Approver,
    DirectStep,
    Employee,
    ExpenseClaim,
    ExpenseStatus,
    Percentage,
    RuleStep,
    StepStatus,
    Designated,
)
from expenseflow.services.errors import NoPendingStep
from expenseflow.services.workflow_executor import record_approval, record_rejection

NOW = datetime(2025, 10, 4, 12, 0, tzinfo=timezone.utc)


def _actor(actor_id):
    return Employee(id=actor_id, company_id=1, name=f"user-{actor_id}")


def _expense(*steps):
    return ExpenseClaim(
        id=1,
        company_id=1,
        submitter_id=99,
        amount_original=Decimal("50"),
        currency_original="USD",
        category="Meals",
        date_spent=date(2025, 10, 1),
        approval_flow=list(steps),
    )


def _percentage_step(sequence=1, threshold="60"):
    return RuleStep(
        sequence=sequence,
        rule_id=7,
        rule_name="Finance",
        rule_type=ApprovalRuleType.PERCENTAGE,
        approvers=(Approver(11), Approver(12), Approver(13)),
        condition=Percentage(Decimal(threshold)),
        required_approvals=2,
    )


def test_direct_step_advances_on_single_approval():
    expense = _expense(DirectStep(sequence=1, approver_id=5), _percentage_step(2))

    record_approval(expense, _actor(5), None, NOW)

    assert expense.current_step_index == 1
    assert expense.approval_flow[0].status is StepStatus.APPROVED
    assert expense.status is ExpenseStatus.PENDING


def test_rule_step_waits_until_condition_met():
    expense = _expense(_percentage_step())

    record_approval(expense, _actor(11), None, NOW)
    step = expense.approval_flow[0]
    assert step.approval_count == 1
    assert step.status is StepStatus.PENDING
    assert expense.current_step_index == 0

    record_approval(expense, _actor(12), None, NOW)
    assert step.approval_count == 2
    assert step.status is StepStatus.APPROVED
    assert expense.current_step_index == 1
    assert expense.status is ExpenseStatus.APPROVED


def test_every_decision_is_logged_even_without_progress():
    expense = _expense(_percentage_step(threshold="100"))

    record_approval(expense, _actor(11), "looks fine", NOW)

    assert len(expense.decisions) == 1
    decision = expense.decisions[0]
    assert decision.action is ApprovalDecisionStatus.APPROVED
    assert decision.actor_id == 11
    assert decision.step_number == 1
    assert decision.timestamp == NOW


def test_comment_is_appended_only_when_given():
    expense = _expense(_percentage_step(threshold="100"))

    record_approval(expense, _actor(11), None, NOW)
    record_approval(expense, _actor(12), "ok by me", NOW)

    assert [c.comment for c in expense.comments] == ["ok by me"]
    assert expense.comments[0].user_id == 12


def test_designated_approver_clears_step_below_required_count():
    step = RuleStep(
        sequence=1,
        rule_id=3,
        rule_name="CFO",
        rule_type=ApprovalRuleType.SPECIFIC,
        approvers=(Approver(11), Approver(12), Approver(13)),
        condition=Designated(13),
        required_approvals=3,
    )
    expense = _expense(step)

    record_approval(expense, _actor(13), None, NOW)

    assert step.approval_count == 1 < step.required_approvals
    assert expense.status is ExpenseStatus.APPROVED


def test_rejection_is_final_regardless_of_prior_approvals():
    expense = _expense(_percentage_step(threshold="100"))
    record_approval(expense, _actor(11), None, NOW)
    record_approval(expense, _actor(12), None, NOW)

    record_rejection(expense, _actor(13), "missing receipt", NOW)

    assert expense.status is ExpenseStatus.REJECTED
    assert expense.current_step_index == 0
    assert expense.approval_flow[0].approval_count == 2
    assert expense.approval_flow[0].status is StepStatus.REJECTED
    assert expense.decisions[-1].action is ApprovalDecisionStatus.REJECTED
    assert expense.comments[-1].comment == "missing receipt"


@pytest.mark.parametrize("terminal", [ExpenseStatus.APPROVED, ExpenseStatus.REJECTED])
def test_terminal_expense_has_no_pending_step(terminal):
    expense = _expense(_percentage_step())
    assert expense.active_step is expense.approval_flow[0]
    expense.status = terminal

    assert expense.is_terminal
    assert expense.active_step is None
    with pytest.raises(NoPendingStep):
        record_approval(expense, _actor(11), None, NOW)
    with pytest.raises(NoPendingStep):
        record_rejection(expense, _actor(11), None, NOW)

    assert expense.decisions == []
    assert expense.approval_flow[0].approval_count == 0


def test_exhausted_flow_has_no_pending_step():
    expense = _expense(DirectStep(sequence=1, approver_id=5))
    expense.current_step_index = 1

    with pytest.raises(NoPendingStep):
        record_approval(expense, _actor(5), None, NOW)
