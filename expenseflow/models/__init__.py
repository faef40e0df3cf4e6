"""Application data models exposed for easy imports."""
from expenseflow import db  # noqa: F401
from expenseflow.domain import (  # noqa: F401
    ApprovalDecisionStatus,
    ApprovalRuleType,
    ExpenseStatus,
    UserRole,
)
from .company import Company  # noqa: F401
from .user import User  # noqa: F401
from .expense import Expense  # noqa: F401
from .approval import ApprovalRule, ExpenseApproval, ExpenseComment  # noqa: F401
from .audit import AuditLog  # noqa: F401

__all__ = [
    "db",
    "Company",
    "User",
    "UserRole",
    "Expense",
    "ExpenseStatus",
    "ExpenseApproval",
    "ExpenseComment",
    "ApprovalDecisionStatus",
    "ApprovalRule",
    "ApprovalRuleType",
    "AuditLog",
]
