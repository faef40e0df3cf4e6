"""Storage-agnostic types used by the approval workflow."""
from .enums import (  # noqa: F401
    ApprovalDecisionStatus,
    ApprovalRuleType,
    ExpenseStatus,
    StepStatus,
    UserRole,
)
from .conditions import (  # noqa: F401
    Condition,
    Designated,
    Hybrid,
    Percentage,
    Unanimous,
    is_satisfied,
)
from .steps import ApprovalStep, Approver, DirectStep, RuleStep, step_from_dict  # noqa: F401
from .records import (  # noqa: F401
    Comment,
    Company,
    Decision,
    Employee,
    ExpenseClaim,
    ExpenseDraft,
    PolicyRule,
)

__all__ = [
    "ApprovalDecisionStatus",
    "ApprovalRuleType",
    "ExpenseStatus",
    "StepStatus",
    "UserRole",
    "Condition",
    "Designated",
    "Hybrid",
    "Percentage",
    "Unanimous",
    "is_satisfied",
    "ApprovalStep",
    "Approver",
    "DirectStep",
    "RuleStep",
    "step_from_dict",
    "Comment",
    "Company",
    "Decision",
    "Employee",
    "ExpenseClaim",
    "ExpenseDraft",
    "PolicyRule",
]
