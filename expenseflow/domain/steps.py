"""Approval steps that make up an expense's flow."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from expenseflow.domain.conditions import Condition, Unanimous, condition_from_dict
from expenseflow.domain.enums import ApprovalRuleType, StepStatus


@dataclass(frozen=True)
class Approver:
    approver_id: int
    approver_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"approver_id": self.approver_id, "approver_name": self.approver_name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Approver":
        return cls(approver_id=int(data["approver_id"]), approver_name=data.get("approver_name") or "")


@dataclass
class DirectStep:
    """A step owned by a single approver, typically the submitter's manager."""

    sequence: int
    approver_id: int
    approver_name: str = ""
    approver_role: Optional[str] = None
    status: StepStatus = StepStatus.PENDING
    kind: ClassVar[str] = "DIRECT"

    def names(self, actor_id: int) -> bool:
        return self.approver_id == actor_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "sequence": self.sequence,
            "approver_id": self.approver_id,
            "approver_name": self.approver_name,
            "approver_role": self.approver_role,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DirectStep":
        return cls(
            sequence=int(data["sequence"]),
            approver_id=int(data["approver_id"]),
            approver_name=data.get("approver_name") or "",
            approver_role=data.get("approver_role"),
            status=StepStatus(data.get("status", StepStatus.PENDING.value)),
        )


@dataclass
class RuleStep:
    """A step snapshotted from a company policy rule at submission time."""

    sequence: int
    rule_id: Optional[int]
    rule_name: str
    rule_type: ApprovalRuleType
    approvers: Tuple[Approver, ...] = ()
    condition: Condition = field(default_factory=Unanimous)
    required_approvals: int = 0
    approval_count: int = 0
    status: StepStatus = StepStatus.PENDING
    kind: ClassVar[str] = "RULE"

    @property
    def approver_count(self) -> int:
        return len(self.approvers)

    def names(self, actor_id: int) -> bool:
        return any(approver.approver_id == actor_id for approver in self.approvers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "sequence": self.sequence,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "rule_type": self.rule_type.value,
            "approvers": [approver.to_dict() for approver in self.approvers],
            "condition": self.condition.to_dict(),
            "required_approvals": self.required_approvals,
            "approval_count": self.approval_count,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleStep":
        return cls(
            sequence=int(data["sequence"]),
            rule_id=data.get("rule_id"),
            rule_name=data.get("rule_name") or "",
            rule_type=ApprovalRuleType(data["rule_type"]),
            approvers=tuple(Approver.from_dict(item) for item in data.get("approvers", [])),
            condition=condition_from_dict(data.get("condition")),
            required_approvals=int(data.get("required_approvals", 0)),
            approval_count=int(data.get("approval_count", 0)),
            status=StepStatus(data.get("status", StepStatus.PENDING.value)),
        )


ApprovalStep = Union[DirectStep, RuleStep]


def step_from_dict(data: Dict[str, Any]) -> ApprovalStep:
    kind = data.get("kind")
    if kind == DirectStep.kind:
        return DirectStep.from_dict(data)
    if kind == RuleStep.kind:
        return RuleStep.from_dict(data)
    raise ValueError(f"Unknown approval step kind {kind!r}")
