"""Administration of company approval rules."""
from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from expenseflow.domain import ApprovalRuleType, Approver, Employee, PolicyRule
from expenseflow.services.errors import NotFound, Unauthorized, ValidationError
from expenseflow.stores.base import AuditTrail, EmployeeDirectory, PolicyStore

logger = logging.getLogger(__name__)

RULE_FIELDS = {"name", "rule_type", "sequence", "approvers", "percentage_threshold", "specific_approver_id"}


def _require_admin(actor: Employee, action: str) -> None:
    if not actor.is_admin:
        raise Unauthorized(f"Only admins can {action} approval rules.")


def parse_rule_type(value: Any) -> ApprovalRuleType:
    if isinstance(value, ApprovalRuleType):
        return value
    try:
        return ApprovalRuleType[str(value).upper()]
    except KeyError:
        raise ValidationError("Invalid rule_type.") from None


def parse_percentage(value: Any) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        percentage = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("Invalid percentage_threshold.") from None
    if not percentage.is_finite() or not Decimal(0) < percentage <= Decimal(100):
        raise ValidationError("percentage_threshold must be greater than 0 and at most 100.")
    return percentage


def parse_sequence(value: Any) -> int:
    if value in (None, ""):
        return 1
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("sequence must be an integer.") from None


def _approver_ids(values: Iterable[Any]) -> List[int]:
    ids = []
    for value in values:
        raw = value.get("approver_id") if isinstance(value, dict) else value
        try:
            ids.append(int(raw))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid approver id {raw!r}.") from None
    return ids


class PolicyService:
    """Create, update and delete rules; every change lands in the audit trail.

    Edits never touch expenses already in flight, because the flow builder
    copies rules into steps at submission time.
    """

    def __init__(self, policies: PolicyStore, directory: EmployeeDirectory, audit: AuditTrail) -> None:
        self.policies = policies
        self.directory = directory
        self.audit = audit

    def _resolve_approvers(self, company_id: int, values: Any) -> tuple:
        if not isinstance(values, (list, tuple)):
            raise ValidationError("'approvers' must be a list.")
        approvers = []
        seen = set()
        for approver_id in _approver_ids(values):
            if approver_id in seen:
                continue
            seen.add(approver_id)
            employee = self.directory.get_employee(approver_id)
            if employee is None or employee.company_id != company_id:
                raise ValidationError(f"Approver {approver_id} is not part of this company.")
            approvers.append(Approver(approver_id=employee.id, approver_name=employee.name))
        return tuple(approvers)

    def _validate(self, rule: PolicyRule) -> PolicyRule:
        if not rule.name or not rule.name.strip():
            raise ValidationError("Rule name is required.")
        if not rule.approvers:
            raise ValidationError("A rule needs at least one approver.")

        needs_percentage = rule.rule_type in (ApprovalRuleType.PERCENTAGE, ApprovalRuleType.HYBRID)
        needs_approver = rule.rule_type in (ApprovalRuleType.SPECIFIC, ApprovalRuleType.HYBRID)
        if needs_percentage and rule.percentage is None:
            raise ValidationError(f"{rule.rule_type.value} rules require percentage_threshold.")
        if needs_approver:
            if rule.specific_approver_id is None:
                raise ValidationError(f"{rule.rule_type.value} rules require specific_approver_id.")
            if not any(a.approver_id == rule.specific_approver_id for a in rule.approvers):
                raise ValidationError("specific_approver_id must be one of the rule's approvers.")

        # Drop parameters the rule type does not use.
        return replace(
            rule,
            name=rule.name.strip(),
            percentage=rule.percentage if needs_percentage else None,
            specific_approver_id=rule.specific_approver_id if needs_approver else None,
        )

    def list_rules(self, actor: Employee) -> List[PolicyRule]:
        rules = self.policies.list_company_rules(actor.company_id)
        return sorted(rules, key=lambda rule: rule.sequence)

    def create_rule(self, actor: Employee, data: Dict[str, Any]) -> PolicyRule:
        _require_admin(actor, "create")

        specific = data.get("specific_approver_id")
        rule = PolicyRule(
            id=None,
            company_id=actor.company_id,
            name=str(data.get("name") or ""),
            rule_type=parse_rule_type(data.get("rule_type")),
            sequence=parse_sequence(data.get("sequence")),
            approvers=self._resolve_approvers(actor.company_id, data.get("approvers") or []),
            percentage=parse_percentage(data.get("percentage_threshold")),
            specific_approver_id=_approver_ids([specific])[0] if specific not in (None, "") else None,
        )
        rule = self.policies.add_rule(self._validate(rule))

        self.audit.record("approval_rule", rule.id, actor.id, "created", rule.to_dict())
        logger.info("Approval rule %s (%s) created by user %s", rule.id, rule.rule_type.value, actor.id)
        return rule

    def update_rule(self, actor: Employee, rule_id: int, updates: Dict[str, Any]) -> PolicyRule:
        _require_admin(actor, "update")

        rule = self.policies.get_rule(rule_id)
        if rule is None or rule.company_id != actor.company_id:
            raise NotFound("Rule not found.")
        if unknown := set(updates) - RULE_FIELDS:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        changes: Dict[str, Any] = {}
        if "name" in updates:
            changes["name"] = str(updates["name"] or "")
        if "rule_type" in updates:
            changes["rule_type"] = parse_rule_type(updates["rule_type"])
        if "sequence" in updates:
            changes["sequence"] = parse_sequence(updates["sequence"])
        if "approvers" in updates:
            changes["approvers"] = self._resolve_approvers(actor.company_id, updates["approvers"])
        if "percentage_threshold" in updates:
            changes["percentage"] = parse_percentage(updates["percentage_threshold"])
        if "specific_approver_id" in updates:
            specific = updates["specific_approver_id"]
            changes["specific_approver_id"] = _approver_ids([specific])[0] if specific not in (None, "") else None

        rule = self.policies.save_rule(self._validate(replace(rule, **changes)))

        self.audit.record("approval_rule", rule.id, actor.id, "updated", rule.to_dict())
        logger.info("Approval rule %s updated by user %s", rule.id, actor.id)
        return rule

    def delete_rule(self, actor: Employee, rule_id: int) -> None:
        _require_admin(actor, "delete")

        rule = self.policies.get_rule(rule_id)
        if rule is None or rule.company_id != actor.company_id:
            raise NotFound("Rule not found.")
        self.policies.remove_rule(rule_id)

        self.audit.record("approval_rule", rule_id, actor.id, "deleted", {"name": rule.name})
        logger.info("Approval rule %s deleted by user %s", rule_id, actor.id)
