"""Enumerations shared by the workflow engine and the persistence models."""
from __future__ import annotations

import enum


class UserRole(enum.Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class ExpenseStatus(enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class StepStatus(enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ApprovalDecisionStatus(enum.Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ApprovalRuleType(enum.Enum):
    UNANIMOUS = "UNANIMOUS"
    PERCENTAGE = "PERCENTAGE"
    SPECIFIC = "SPECIFIC"
    HYBRID = "HYBRID"
