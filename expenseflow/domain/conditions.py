"""Approval conditions for rule steps and their evaluation.

A condition is one of four variants. ``is_satisfied`` is the only place that
interprets them; it is pure and never mutates the step it inspects.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional, Union

from expenseflow.domain.enums import ApprovalRuleType

if TYPE_CHECKING:
    from expenseflow.domain.records import Decision
    from expenseflow.domain.steps import RuleStep


@dataclass(frozen=True)
class Unanimous:
    kind: ClassVar[str] = "UNANIMOUS"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind}


@dataclass(frozen=True)
class Percentage:
    threshold: Decimal
    kind: ClassVar[str] = "PERCENTAGE"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "percentage": str(self.threshold)}


@dataclass(frozen=True)
class Designated:
    approver_id: int
    kind: ClassVar[str] = "DESIGNATED"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "approver_id": self.approver_id}


@dataclass(frozen=True)
class Hybrid:
    threshold: Decimal
    approver_id: int
    kind: ClassVar[str] = "HYBRID"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "percentage": str(self.threshold),
            "approver_id": self.approver_id,
        }


Condition = Union[Unanimous, Percentage, Designated, Hybrid]


def condition_for_rule(
    rule_type: ApprovalRuleType,
    percentage: Optional[Decimal],
    approver_id: Optional[int],
) -> Condition:
    """Build the condition variant that matches a policy rule's type."""
    if rule_type is ApprovalRuleType.PERCENTAGE:
        return Percentage(Decimal(percentage))
    if rule_type is ApprovalRuleType.SPECIFIC:
        return Designated(int(approver_id))
    if rule_type is ApprovalRuleType.HYBRID:
        return Hybrid(Decimal(percentage), int(approver_id))
    return Unanimous()


def condition_from_dict(data: Optional[Dict[str, Any]]) -> Condition:
    if not data:
        return Unanimous()
    kind = data.get("kind")
    if kind == Percentage.kind:
        return Percentage(Decimal(data["percentage"]))
    if kind == Designated.kind:
        return Designated(int(data["approver_id"]))
    if kind == Hybrid.kind:
        return Hybrid(Decimal(data["percentage"]), int(data["approver_id"]))
    if kind == Unanimous.kind:
        return Unanimous()
    raise ValueError(f"Unknown condition kind {kind!r}")


def threshold_met(approval_count: int, approver_count: int, threshold: Decimal) -> bool:
    """Return True when ``approval_count / approver_count`` reaches ``threshold`` percent."""
    if approver_count == 0:
        return True
    return Decimal(approval_count) * 100 >= threshold * approver_count


def is_satisfied(step: "RuleStep", decision: "Decision") -> bool:
    """Evaluate ``step``'s condition after its counter includes ``decision``."""
    condition = step.condition
    if isinstance(condition, Unanimous):
        return step.approval_count >= step.approver_count
    if isinstance(condition, Designated):
        return decision.actor_id == condition.approver_id
    if isinstance(condition, Percentage):
        return threshold_met(step.approval_count, step.approver_count, condition.threshold)
    if isinstance(condition, Hybrid):
        return decision.actor_id == condition.approver_id or threshold_met(
            step.approval_count, step.approver_count, condition.threshold
        )
    raise TypeError(f"Unsupported condition {condition!r}")
