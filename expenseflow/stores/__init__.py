"""Storage backends for the approval workflow."""
from .base import AuditTrail, EmployeeDirectory, ExpenseStore, PolicyStore  # noqa: F401
from .memory import InMemoryStore  # noqa: F401

__all__ = ["AuditTrail", "EmployeeDirectory", "ExpenseStore", "PolicyStore", "InMemoryStore"]
