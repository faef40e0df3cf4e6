"""Storage contracts the approval engine depends on."""
from __future__ import annotations

import abc
from typing import Any, Dict, List, Optional

from expenseflow.domain import Company, Employee, ExpenseClaim, PolicyRule


class ExpenseStore(abc.ABC):
    """Durable expenses keyed by id."""

    @abc.abstractmethod
    def add(self, expense: ExpenseClaim) -> ExpenseClaim:
        """Store a new expense and return it with its id assigned."""

    @abc.abstractmethod
    def load(self, expense_id: int, for_update: bool = False) -> Optional[ExpenseClaim]:
        """Return a working copy of the expense, or None."""

    @abc.abstractmethod
    def persist(self, expense: ExpenseClaim) -> None:
        """Write back a working copy previously returned by ``load``."""

    @abc.abstractmethod
    def list_by_submitter(self, submitter_id: int) -> List[ExpenseClaim]:
        ...

    @abc.abstractmethod
    def list_by_company(self, company_id: int, status=None) -> List[ExpenseClaim]:
        ...


class EmployeeDirectory(abc.ABC):
    @abc.abstractmethod
    def get_employee(self, employee_id: int) -> Optional[Employee]:
        ...

    @abc.abstractmethod
    def get_company(self, company_id: int) -> Optional[Company]:
        ...

    @abc.abstractmethod
    def list_employees(self, company_id: int) -> List[Employee]:
        ...

    @abc.abstractmethod
    def add_employee(self, employee: Employee, password: Optional[str] = None) -> Employee:
        ...

    @abc.abstractmethod
    def save_employee(self, employee: Employee) -> Employee:
        """Overwrite an existing employee's profile."""

    @abc.abstractmethod
    def remove_employee(self, employee_id: int) -> None:
        ...


class PolicyStore(abc.ABC):
    """Company approval rules. Reads return snapshots."""

    @abc.abstractmethod
    def list_company_rules(self, company_id: int) -> List[PolicyRule]:
        """Rules for the company in insertion order."""

    @abc.abstractmethod
    def get_rule(self, rule_id: int) -> Optional[PolicyRule]:
        ...

    @abc.abstractmethod
    def add_rule(self, rule: PolicyRule) -> PolicyRule:
        ...

    @abc.abstractmethod
    def save_rule(self, rule: PolicyRule) -> PolicyRule:
        ...

    @abc.abstractmethod
    def remove_rule(self, rule_id: int) -> None:
        ...


class AuditTrail(abc.ABC):
    @abc.abstractmethod
    def record(
        self,
        entity_type: str,
        entity_id: int,
        user_id: Optional[int],
        action: str,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...
