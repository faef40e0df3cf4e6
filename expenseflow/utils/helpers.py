"""General helper utilities."""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Dict

from flask import current_app, jsonify, request
from flask_login import current_user

from expenseflow.domain import Employee, UserRole

JsonView = Callable[..., Any]


def json_response(payload: Any, status: int = 200):
    """Return a JSON response with status code."""
    return jsonify(payload), status


def request_payload() -> Dict[str, Any]:
    """Return the JSON body or form fields of the current request."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def role_required(*roles: UserRole):
    """Restrict a route to one or more roles."""
    def decorator(view_func: JsonView) -> JsonView:
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                return json_response({"error": "Authentication required."}, status=401)
            if current_user.role not in roles:
                return json_response({"error": "Insufficient permissions."}, status=403)
            return view_func(*args, **kwargs)

        return wrapped

    return decorator


def current_actor() -> Employee:
    return current_user.to_record()


def get_store():
    from expenseflow.stores.sql import SQLAlchemyStore

    return SQLAlchemyStore()


def get_engine():
    """Build an engine over the request's session and the app-wide lock registry."""
    from expenseflow.services.approval_engine import ApprovalEngine

    store = get_store()
    return ApprovalEngine(
        expenses=store,
        directory=store,
        policies=store,
        converter=current_app.extensions["currency_converter"],
        locks=current_app.extensions["expense_locks"],
        enforce_step_approvers=current_app.config["ENFORCE_STEP_APPROVERS"],
    )


def get_policy_service():
    from expenseflow.services.policy_service import PolicyService

    store = get_store()
    return PolicyService(policies=store, directory=store, audit=store)


def get_directory_service():
    from expenseflow.services.directory_service import DirectoryService

    store = get_store()
    return DirectoryService(directory=store, audit=store)
