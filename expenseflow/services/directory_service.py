"""Admin management of the employees that approval flows route through."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from expenseflow.domain import Employee, UserRole
from expenseflow.services.errors import NotFound, Unauthorized, ValidationError
from expenseflow.stores.base import AuditTrail, EmployeeDirectory

logger = logging.getLogger(__name__)

EMPLOYEE_FIELDS = {"name", "email", "role", "manager_id", "is_manager_approver"}


def parse_role(value: Any) -> UserRole:
    try:
        return UserRole[str(value or UserRole.EMPLOYEE.value).upper()]
    except KeyError:
        raise ValidationError("Unsupported role.") from None


def _flag(value: Any) -> bool:
    # Form posts send checkboxes as strings.
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


class DirectoryService:
    """Create, update and delete employees; every change lands in the audit trail.

    Manager links only shape flows built after the change. Expenses already
    submitted keep the manager step they were routed with.
    """

    def __init__(self, directory: EmployeeDirectory, audit: AuditTrail) -> None:
        self.directory = directory
        self.audit = audit

    def _require_admin(self, actor: Employee, action: str) -> None:
        if not actor.is_admin:
            raise Unauthorized(f"Only admins can {action} employees.")

    def _get_in_company(self, actor: Employee, employee_id: int) -> Employee:
        employee = self.directory.get_employee(employee_id)
        if employee is None or employee.company_id != actor.company_id:
            raise NotFound("Employee not found.")
        return employee

    def _check_email(self, actor: Employee, email: str, employee_id: Optional[int] = None) -> str:
        email = email.strip().lower()
        if not email:
            raise ValidationError("Email is required.")
        for employee in self.directory.list_employees(actor.company_id):
            if employee.email == email and employee.id != employee_id:
                raise ValidationError("Email already exists.")
        return email

    def _resolve_manager(self, actor: Employee, value: Any, employee_id: Optional[int] = None) -> Optional[int]:
        if value in (None, "", 0):
            return None
        try:
            manager_id = int(value)
        except (TypeError, ValueError):
            raise ValidationError("Invalid manager selected.") from None
        manager = self.directory.get_employee(manager_id)
        if manager is None or manager.company_id != actor.company_id or manager_id == employee_id:
            raise ValidationError("Invalid manager selected.")
        return manager_id

    def create_employee(self, actor: Employee, payload: Dict[str, Any]) -> Employee:
        """Create an employee or manager in the admin's company."""
        self._require_admin(actor, "create")

        required_fields = {"name", "email", "password"}
        if missing := {field for field in required_fields if not payload.get(field)}:
            raise ValidationError(f"Missing fields: {', '.join(sorted(missing))}")

        role = parse_role(payload.get("role"))
        email = self._check_email(actor, str(payload["email"]))
        manager_id = self._resolve_manager(actor, payload.get("manager_id"))

        employee = self.directory.add_employee(
            Employee(
                id=0,
                company_id=actor.company_id,
                name=str(payload["name"]).strip(),
                role=role,
                email=email,
                manager_id=manager_id,
                is_manager_approver=_flag(payload.get("is_manager_approver")) and manager_id is not None,
            ),
            password=str(payload["password"]),
        )

        self.audit.record("user", employee.id, actor.id, "created", {"role": role.value, "manager_id": manager_id})
        logger.info("User %s (%s) created by admin %s", employee.id, role.value, actor.id)
        return employee

    def update_employee(self, actor: Employee, employee_id: int, updates: Dict[str, Any]) -> Employee:
        """Change an employee's profile, role or manager link."""
        self._require_admin(actor, "update")

        employee = self._get_in_company(actor, employee_id)
        if unknown := set(updates) - EMPLOYEE_FIELDS:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        changes: Dict[str, Any] = {}
        if "name" in updates:
            name = str(updates["name"] or "").strip()
            if not name:
                raise ValidationError("Name is required.")
            changes["name"] = name
        if "email" in updates:
            changes["email"] = self._check_email(actor, str(updates["email"] or ""), employee.id)
        if "role" in updates:
            changes["role"] = parse_role(updates["role"])
        if "manager_id" in updates:
            changes["manager_id"] = self._resolve_manager(actor, updates["manager_id"], employee.id)
        if "is_manager_approver" in updates:
            changes["is_manager_approver"] = _flag(updates["is_manager_approver"])

        employee = replace(employee, **changes)
        if employee.manager_id is None:
            employee = replace(employee, is_manager_approver=False)
        employee = self.directory.save_employee(employee)

        self.audit.record("user", employee.id, actor.id, "updated", {field: updates[field] for field in sorted(updates)})
        logger.info("User %s updated by admin %s", employee.id, actor.id)
        return employee

    def delete_employee(self, actor: Employee, employee_id: int) -> None:
        self._require_admin(actor, "delete")

        employee = self._get_in_company(actor, employee_id)
        if employee.id == actor.id:
            raise ValidationError("Admins cannot delete their own account.")
        reports = [e.name for e in self.directory.list_employees(actor.company_id) if e.manager_id == employee.id]
        if reports:
            raise ValidationError(f"Reassign the employee's reports first: {', '.join(sorted(reports))}")

        self.directory.remove_employee(employee.id)

        self.audit.record("user", employee.id, actor.id, "deleted", {"name": employee.name})
        logger.info("User %s deleted by admin %s", employee.id, actor.id)

    def list_employees(self, actor: Employee) -> List[Employee]:
        return self.directory.list_employees(actor.company_id)

    def list_managers(self, actor: Employee) -> List[Employee]:
        return [
            employee
            for employee in self.directory.list_employees(actor.company_id)
            if employee.role in (UserRole.MANAGER, UserRole.ADMIN)
        ]
