"""Employee-facing routes."""
from __future__ import annotations

from typing import Any

from flask import current_app
from flask_login import login_required

from expenseflow.services.approval_engine import parse_expense_payload
from expenseflow.services.errors import NotFound
from expenseflow.utils.helpers import current_actor, get_engine, json_response, request_payload

from . import employee_bp


@employee_bp.route("/expenses", methods=["GET"])
@login_required
def list_expenses() -> Any:
    """List expenses submitted by the current user."""
    expenses = get_engine().my_submissions(current_actor())
    return json_response({"expenses": [expense.to_dict() for expense in expenses]})


@employee_bp.route("/expenses", methods=["POST"])
@login_required
def submit_expense() -> Any:
    """Submit a new expense and route it through the company's approval flow."""
    draft = parse_expense_payload(request_payload())
    expense = get_engine().submit(current_actor(), draft)

    if expense.conversion_degraded:
        current_app.logger.warning(
            "Expense %s stored without currency conversion (%s -> %s)",
            expense.id,
            expense.currency_original,
            expense.company_currency,
        )
    return json_response({"message": "Expense submitted.", "expense": expense.to_dict()}, status=201)


@employee_bp.route("/expenses/<int:expense_id>", methods=["GET"])
@login_required
def expense_detail(expense_id: int) -> Any:
    """View an expense the current user submitted, with its approval history."""
    actor = current_actor()
    expense = get_engine().get_expense(expense_id)
    if expense.submitter_id != actor.id and not (actor.is_admin and expense.company_id == actor.company_id):
        raise NotFound("Expense not found.")
    return json_response({"expense": expense.to_dict()})
