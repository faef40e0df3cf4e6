"""Plain records the workflow engine reads and writes.

These are storage-agnostic: the in-memory store keeps them as-is and the
SQLAlchemy store maps them onto the ORM models in ``expenseflow.models``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from expenseflow.domain.conditions import Condition, condition_for_rule
from expenseflow.domain.enums import (
    ApprovalDecisionStatus,
    ApprovalRuleType,
    ExpenseStatus,
    UserRole,
)
from expenseflow.domain.steps import ApprovalStep, Approver


@dataclass(frozen=True)
class Company:
    id: int
    name: str
    currency_code: str
    country: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "country": self.country,
            "currency_code": self.currency_code,
        }


@dataclass(frozen=True)
class Employee:
    id: int
    company_id: int
    name: str
    role: UserRole = UserRole.EMPLOYEE
    email: Optional[str] = None
    manager_id: Optional[int] = None
    is_manager_approver: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "manager_id": self.manager_id,
            "is_manager_approver": self.is_manager_approver,
        }


@dataclass(frozen=True)
class PolicyRule:
    """An admin-authored approval rule. Frozen so reads hand out snapshots."""

    id: Optional[int]
    company_id: int
    name: str
    rule_type: ApprovalRuleType
    sequence: int = 1
    approvers: Tuple[Approver, ...] = ()
    percentage: Optional[Decimal] = None
    specific_approver_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def condition(self) -> Condition:
        return condition_for_rule(self.rule_type, self.percentage, self.specific_approver_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "rule_type": self.rule_type.value,
            "sequence": self.sequence,
            "approvers": [approver.to_dict() for approver in self.approvers],
            "percentage_threshold": float(self.percentage) if self.percentage is not None else None,
            "specific_approver_id": self.specific_approver_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class Decision:
    """One approve/reject action. Appended to an expense, never edited."""

    actor_id: int
    actor_name: str
    action: ApprovalDecisionStatus
    comment: Optional[str] = None
    timestamp: Optional[datetime] = None
    step_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approver_user_id": self.actor_id,
            "approver_name": self.actor_name,
            "action": self.action.value,
            "comment": self.comment,
            "step_number": self.step_number,
            "acted_at": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass(frozen=True)
class Comment:
    user_id: int
    user_name: str
    comment: str
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "user_name": self.user_name,
            "comment": self.comment,
            "created_at": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass(frozen=True)
class ExpenseDraft:
    """Validated submission input, before conversion and routing."""

    amount: Decimal
    currency: str
    category: str
    date_spent: date
    description: Optional[str] = None
    merchant: Optional[str] = None
    receipt_path: Optional[str] = None


@dataclass
class ExpenseClaim:
    company_id: int
    submitter_id: int
    amount_original: Decimal
    currency_original: str
    category: str
    date_spent: date
    id: Optional[int] = None
    submitter_name: str = ""
    amount_in_company_currency: Optional[Decimal] = None
    company_currency: Optional[str] = None
    conversion_degraded: bool = False
    description: Optional[str] = None
    merchant: Optional[str] = None
    receipt_path: Optional[str] = None
    status: ExpenseStatus = ExpenseStatus.PENDING
    approval_flow: List[ApprovalStep] = field(default_factory=list)
    current_step_index: int = 0
    decisions: List[Decision] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def active_step(self) -> Optional[ApprovalStep]:
        """The step awaiting a decision, or None once the expense is terminal."""
        if self.is_terminal:
            return None
        if 0 <= self.current_step_index < len(self.approval_flow):
            return self.approval_flow[self.current_step_index]
        return None

    @property
    def is_terminal(self) -> bool:
        return self.status is not ExpenseStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "submitter_user_id": self.submitter_id,
            "submitter_name": self.submitter_name,
            "amount_original": float(self.amount_original) if self.amount_original is not None else None,
            "currency_original": self.currency_original,
            "amount_in_company_currency": float(self.amount_in_company_currency)
            if self.amount_in_company_currency is not None
            else None,
            "company_currency": self.company_currency,
            "conversion_degraded": self.conversion_degraded,
            "category": self.category,
            "description": self.description,
            "merchant": self.merchant,
            "receipt_path": self.receipt_path,
            "date_spent": self.date_spent.isoformat() if self.date_spent else None,
            "status": self.status.value,
            "approval_flow": [step.to_dict() for step in self.approval_flow],
            "current_step_index": self.current_step_index,
            "approvals": [decision.to_dict() for decision in self.decisions],
            "comments": [comment.to_dict() for comment in self.comments],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
