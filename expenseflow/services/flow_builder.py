"""Builds the approval flow for a newly submitted expense."""
from __future__ import annotations

import math
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from expenseflow.domain import (
    ApprovalStep,
    DirectStep,
    Employee,
    ExpenseClaim,
    Hybrid,
    Percentage,
    PolicyRule,
    RuleStep,
)

EmployeeResolver = Callable[[int], Optional[Employee]]


def required_approvals_for(rule: PolicyRule) -> int:
    """Approvals needed under the rule's counting semantics.

    Percentage-bearing rules need ``ceil(approvers * pct / 100)``; every other
    rule counts as unanimous. A rule without approvers needs none.
    """
    approver_count = len(rule.approvers)
    condition = rule.condition
    if isinstance(condition, (Percentage, Hybrid)):
        return math.ceil(Decimal(approver_count) * condition.threshold / 100)
    return approver_count


def manager_step(submitter: Employee, resolve_employee: EmployeeResolver) -> Optional[DirectStep]:
    if not submitter.manager_id or not submitter.is_manager_approver:
        return None
    manager = resolve_employee(submitter.manager_id)
    if manager is None:
        return None
    return DirectStep(
        sequence=1,
        approver_id=manager.id,
        approver_name=manager.name,
        approver_role=manager.role.value,
    )


def rule_step(rule: PolicyRule, sequence: int) -> RuleStep:
    return RuleStep(
        sequence=sequence,
        rule_id=rule.id,
        rule_name=rule.name,
        rule_type=rule.rule_type,
        approvers=tuple(rule.approvers),
        condition=rule.condition,
        required_approvals=required_approvals_for(rule),
    )


def build_flow(
    expense: ExpenseClaim,
    submitter: Employee,
    company_rules: Iterable[PolicyRule],
    resolve_employee: EmployeeResolver,
) -> List[ApprovalStep]:
    """Return the ordered steps that must clear before ``expense`` is approved.

    The manager step (when the submitter requires one) comes first, then one
    step per company rule ordered by the rule's sequence. ``sorted`` is stable,
    so rules sharing a sequence keep the order they were listed in.
    """
    flow: List[ApprovalStep] = []

    step = manager_step(submitter, resolve_employee)
    if step is not None:
        flow.append(step)

    applicable = [rule for rule in company_rules if rule.company_id == expense.company_id]
    for rule in sorted(applicable, key=lambda item: item.sequence):
        flow.append(rule_step(rule, sequence=len(flow) + 1))

    return flow
