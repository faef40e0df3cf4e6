"""Expense model definitions."""
from __future__ import annotations

from decimal import Decimal

from expenseflow import db
from expenseflow.domain import Comment, ExpenseClaim, ExpenseStatus, step_from_dict


class Expense(db.Model):
    __tablename__ = "expenses"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    submitter_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount_original = db.Column(db.Numeric(12, 2), nullable=False)
    currency_original = db.Column(db.String(10), nullable=False)
    amount_in_company_currency = db.Column(db.Numeric(12, 2), nullable=True)
    company_currency = db.Column(db.String(10), nullable=True)
    conversion_degraded = db.Column(db.Boolean, default=False, nullable=False)
    category = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    merchant = db.Column(db.String(255), nullable=True)
    date_spent = db.Column(db.Date, nullable=False)
    status = db.Column(db.Enum(ExpenseStatus, name="expense_status"), nullable=False, default=ExpenseStatus.PENDING)
    receipt_path = db.Column(db.String(255), nullable=True)
    approval_flow = db.Column(db.JSON, nullable=False, default=list)
    current_step_index = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    company = db.relationship("Company", back_populates="expenses", lazy="joined")
    submitter = db.relationship("User", back_populates="submitted_expenses", lazy="joined")
    approvals = db.relationship(
        "ExpenseApproval",
        back_populates="expense",
        lazy="selectin",
        order_by="ExpenseApproval.id",
        cascade="all, delete-orphan",
    )
    comments = db.relationship(
        "ExpenseComment",
        back_populates="expense",
        lazy="selectin",
        order_by="ExpenseComment.id",
        cascade="all, delete-orphan",
    )

    def to_record(self) -> ExpenseClaim:
        return ExpenseClaim(
            id=self.id,
            company_id=self.company_id,
            submitter_id=self.submitter_user_id,
            submitter_name=self.submitter.full_name if self.submitter else "",
            amount_original=Decimal(self.amount_original),
            currency_original=self.currency_original,
            amount_in_company_currency=Decimal(self.amount_in_company_currency)
            if self.amount_in_company_currency is not None
            else None,
            company_currency=self.company_currency,
            conversion_degraded=bool(self.conversion_degraded),
            category=self.category,
            description=self.description,
            merchant=self.merchant,
            receipt_path=self.receipt_path,
            date_spent=self.date_spent,
            status=self.status,
            approval_flow=[step_from_dict(step) for step in (self.approval_flow or [])],
            current_step_index=self.current_step_index,
            decisions=[approval.to_record() for approval in self.approvals],
            comments=[
                Comment(
                    user_id=comment.user_id,
                    user_name=comment.user_name,
                    comment=comment.comment,
                    timestamp=comment.created_at,
                )
                for comment in self.comments
            ],
            created_at=self.created_at,
        )

    def to_dict(self) -> dict:
        return self.to_record().to_dict()

    def __repr__(self) -> str:
        return f"<Expense id={self.id} status={self.status.value if self.status else None}>"
