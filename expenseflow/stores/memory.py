"""Process-local store used by tests and by embedding callers."""
from __future__ import annotations

import copy
import itertools
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from expenseflow.domain import Company, Employee, ExpenseClaim, PolicyRule
from expenseflow.stores.base import AuditTrail, EmployeeDirectory, ExpenseStore, PolicyStore


class InMemoryStore(ExpenseStore, EmployeeDirectory, PolicyStore, AuditTrail):
    """Keeps every entity in dictionaries guarded by one collection lock.

    Expenses are deep-copied on the way in and out, so a loaded expense is a
    private working copy until it is persisted again.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self.companies: Dict[int, Company] = {}
        self.employees: Dict[int, Employee] = {}
        self.rules: Dict[int, PolicyRule] = {}
        self.expenses: Dict[int, ExpenseClaim] = {}
        self.audit_log: List[Dict[str, Any]] = []

    def _next_id(self) -> int:
        return next(self._ids)

    # Companies and employees -------------------------------------------------

    def add_company(self, name: str, currency_code: str, country: Optional[str] = None) -> Company:
        with self._lock:
            company = Company(id=self._next_id(), name=name, currency_code=currency_code, country=country)
            self.companies[company.id] = company
            return company

    def get_company(self, company_id: int) -> Optional[Company]:
        with self._lock:
            return self.companies.get(company_id)

    def get_employee(self, employee_id: int) -> Optional[Employee]:
        with self._lock:
            return self.employees.get(employee_id)

    def list_employees(self, company_id: int) -> List[Employee]:
        with self._lock:
            return [employee for employee in self.employees.values() if employee.company_id == company_id]

    def add_employee(self, employee: Employee, password: Optional[str] = None) -> Employee:
        with self._lock:
            if not employee.id:
                employee = replace(employee, id=self._next_id())
            self.employees[employee.id] = employee
            return employee

    def save_employee(self, employee: Employee) -> Employee:
        with self._lock:
            self.employees[employee.id] = employee
            return employee

    def remove_employee(self, employee_id: int) -> None:
        with self._lock:
            self.employees.pop(employee_id, None)

    # Policy rules ------------------------------------------------------------

    def list_company_rules(self, company_id: int) -> List[PolicyRule]:
        with self._lock:
            return [rule for rule in self.rules.values() if rule.company_id == company_id]

    def get_rule(self, rule_id: int) -> Optional[PolicyRule]:
        with self._lock:
            return self.rules.get(rule_id)

    def add_rule(self, rule: PolicyRule) -> PolicyRule:
        with self._lock:
            rule = replace(rule, id=self._next_id(), created_at=rule.created_at or datetime.now(timezone.utc))
            self.rules[rule.id] = rule
            return rule

    def save_rule(self, rule: PolicyRule) -> PolicyRule:
        with self._lock:
            self.rules[rule.id] = rule
            return rule

    def remove_rule(self, rule_id: int) -> None:
        with self._lock:
            self.rules.pop(rule_id, None)

    # Expenses ----------------------------------------------------------------

    def add(self, expense: ExpenseClaim) -> ExpenseClaim:
        with self._lock:
            expense.id = self._next_id()
            self.expenses[expense.id] = copy.deepcopy(expense)
            return expense

    def load(self, expense_id: int, for_update: bool = False) -> Optional[ExpenseClaim]:
        with self._lock:
            stored = self.expenses.get(expense_id)
            return copy.deepcopy(stored) if stored is not None else None

    def persist(self, expense: ExpenseClaim) -> None:
        with self._lock:
            self.expenses[expense.id] = copy.deepcopy(expense)

    def list_by_submitter(self, submitter_id: int) -> List[ExpenseClaim]:
        with self._lock:
            return [copy.deepcopy(e) for e in self.expenses.values() if e.submitter_id == submitter_id]

    def list_by_company(self, company_id: int, status=None) -> List[ExpenseClaim]:
        with self._lock:
            return [
                copy.deepcopy(e)
                for e in self.expenses.values()
                if e.company_id == company_id and (status is None or e.status is status)
            ]

    # Audit -------------------------------------------------------------------

    def record(
        self,
        entity_type: str,
        entity_id: int,
        user_id: Optional[int],
        action: str,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        with self._lock:
            self.audit_log.append(
                {
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "user_id": user_id,
                    "action": action,
                    "extra_data": extra_data,
                    "timestamp": datetime.now(timezone.utc),
                }
            )
