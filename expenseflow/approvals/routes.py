"""Approval decision routes."""
from __future__ import annotations

from typing import Any

from flask import current_app
from flask_login import login_required

from expenseflow.utils.helpers import current_actor, get_engine, json_response, request_payload

from . import approvals_bp


@approvals_bp.route("/pending", methods=["GET"])
@login_required
def pending_approvals() -> Any:
    """Return expenses waiting on the current user's decision."""
    expenses = get_engine().pending_for(current_actor())
    return json_response({"expenses": [expense.to_dict() for expense in expenses]})


@approvals_bp.route("/<int:expense_id>/approve", methods=["POST"])
@login_required
def approve_expense(expense_id: int) -> Any:
    comment = request_payload().get("comment") or None
    expense = get_engine().approve(expense_id, current_actor(), comment)
    return json_response({"message": "Expense approved.", "expense": expense.to_dict()})


@approvals_bp.route("/<int:expense_id>/reject", methods=["POST"])
@login_required
def reject_expense(expense_id: int) -> Any:
    """Reject an expense outright. A comment is expected for the audit trail."""
    comment = request_payload().get("comment") or None
    if not comment:
        current_app.logger.info("Expense %s rejected without a comment", expense_id)
    expense = get_engine().reject(expense_id, current_actor(), comment)
    return json_response({"message": "Expense rejected.", "expense": expense.to_dict()})
