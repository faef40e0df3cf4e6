"""Administrative routes."""
from __future__ import annotations

from typing import Any

from flask_login import login_required

from expenseflow.models import UserRole
from expenseflow.utils.helpers import (
    current_actor,
    get_directory_service,
    get_engine,
    get_policy_service,
    json_response,
    request_payload,
    role_required,
)

from . import admin_bp


@admin_bp.route("/users", methods=["GET"])
@login_required
@role_required(UserRole.ADMIN)
def users() -> Any:
    """List all users in the admin's company."""
    employees = get_directory_service().list_employees(current_actor())
    return json_response({"users": [employee.to_dict() for employee in employees]})


@admin_bp.route("/users", methods=["POST"])
@login_required
@role_required(UserRole.ADMIN)
def create_user() -> Any:
    """Create a new employee or manager."""
    employee = get_directory_service().create_employee(current_actor(), request_payload())
    return json_response({"message": "User created.", "user": employee.to_dict()}, status=201)


@admin_bp.route("/users/<int:user_id>", methods=["PATCH"])
@login_required
@role_required(UserRole.ADMIN)
def update_user(user_id: int) -> Any:
    """Update a user's profile, role or manager assignment."""
    employee = get_directory_service().update_employee(current_actor(), user_id, request_payload())
    return json_response({"message": "User updated.", "user": employee.to_dict()})


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@login_required
@role_required(UserRole.ADMIN)
def delete_user(user_id: int) -> Any:
    get_directory_service().delete_employee(current_actor(), user_id)
    return json_response({"message": "User deleted."})


@admin_bp.route("/managers", methods=["GET"])
@login_required
@role_required(UserRole.ADMIN)
def managers() -> Any:
    employees = get_directory_service().list_managers(current_actor())
    return json_response({"managers": [employee.to_dict() for employee in employees]})


@admin_bp.route("/approval-rules", methods=["GET"])
@login_required
@role_required(UserRole.ADMIN)
def approval_rules() -> Any:
    rules = get_policy_service().list_rules(current_actor())
    return json_response({"rules": [rule.to_dict() for rule in rules]})


@admin_bp.route("/approval-rules", methods=["POST"])
@login_required
def create_rule() -> Any:
    """Create an approval rule. Applies to expenses submitted from now on."""
    rule = get_policy_service().create_rule(current_actor(), request_payload())
    return json_response({"message": "Approval rule created.", "rule": rule.to_dict()}, status=201)


@admin_bp.route("/approval-rules/<int:rule_id>", methods=["PATCH"])
@login_required
def update_rule(rule_id: int) -> Any:
    rule = get_policy_service().update_rule(current_actor(), rule_id, request_payload())
    return json_response({"message": "Approval rule updated.", "rule": rule.to_dict()})


@admin_bp.route("/approval-rules/<int:rule_id>", methods=["DELETE"])
@login_required
def delete_rule(rule_id: int) -> Any:
    get_policy_service().delete_rule(current_actor(), rule_id)
    return json_response({"message": "Approval rule deleted."})


@admin_bp.route("/expenses", methods=["GET"])
@login_required
def company_expenses() -> Any:
    """Company-wide expense ledger."""
    expenses = get_engine().company_ledger(current_actor())
    return json_response({"expenses": [expense.to_dict() for expense in expenses]})
