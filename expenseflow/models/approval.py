"""Approval-related models."""
from __future__ import annotations

from decimal import Decimal

from expenseflow import db
from expenseflow.domain import (
    ApprovalDecisionStatus,
    ApprovalRuleType,
    Approver,
    Decision,
    PolicyRule,
)


class ExpenseApproval(db.Model):
    """One recorded decision on an expense. Rows are only ever inserted."""

    __tablename__ = "expense_approvals"

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=False, index=True)
    approver_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    approver_name = db.Column(db.String(255), nullable=False, default="")
    step_number = db.Column(db.Integer, nullable=True)
    status = db.Column(
        db.Enum(ApprovalDecisionStatus, name="approval_decision_status"),
        nullable=False,
    )
    comment = db.Column(db.Text, nullable=True)
    acted_at = db.Column(db.DateTime, nullable=False)

    expense = db.relationship("Expense", back_populates="approvals")

    def to_record(self) -> Decision:
        return Decision(
            actor_id=self.approver_user_id,
            actor_name=self.approver_name,
            action=self.status,
            comment=self.comment,
            timestamp=self.acted_at,
            step_number=self.step_number,
        )

    def __repr__(self) -> str:
        return (
            f"<ExpenseApproval expense_id={self.expense_id} "
            f"status={self.status.value if self.status else None}>"
        )


class ExpenseComment(db.Model):
    __tablename__ = "expense_comments"

    id = db.Column(db.Integer, primary_key=True)
    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    user_name = db.Column(db.String(255), nullable=False, default="")
    comment = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)

    expense = db.relationship("Expense", back_populates="comments")

    def __repr__(self) -> str:
        return f"<ExpenseComment expense_id={self.expense_id} user_id={self.user_id}>"


class ApprovalRule(db.Model):
    __tablename__ = "approval_rules"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    sequence = db.Column(db.Integer, nullable=False, default=1)
    rule_type = db.Column(db.Enum(ApprovalRuleType, name="approval_rule_type"), nullable=False)
    # Ordered list of {"approver_id", "approver_name"}
    approvers = db.Column(db.JSON, nullable=False, default=list)
    percentage_threshold = db.Column(db.Numeric(5, 2), nullable=True)
    specific_approver_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now(), nullable=False)

    company = db.relationship("Company", back_populates="approval_rules", lazy="joined")

    def to_record(self) -> PolicyRule:
        return PolicyRule(
            id=self.id,
            company_id=self.company_id,
            name=self.name,
            rule_type=self.rule_type,
            sequence=self.sequence,
            approvers=tuple(Approver.from_dict(item) for item in (self.approvers or [])),
            percentage=Decimal(self.percentage_threshold) if self.percentage_threshold is not None else None,
            specific_approver_id=self.specific_approver_id,
            created_at=self.created_at,
        )

    def apply(self, rule: PolicyRule) -> None:
        self.company_id = rule.company_id
        self.name = rule.name
        self.sequence = rule.sequence
        self.rule_type = rule.rule_type
        self.approvers = [approver.to_dict() for approver in rule.approvers]
        self.percentage_threshold = rule.percentage
        self.specific_approver_id = rule.specific_approver_id

    def to_dict(self) -> dict:
        return self.to_record().to_dict()

    def __repr__(self) -> str:
        return f"<ApprovalRule id={self.id} type={self.rule_type.value if self.rule_type else None}>"
