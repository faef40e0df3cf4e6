"""Admin rule management."""
from decimal import Decimal

import pytest

from expenseflow.domain import ApprovalRuleType, Designated, Hybrid, Percentage
from expenseflow.services.errors import NotFound, Unauthorized, ValidationError


def _payload(people, **overrides):
    payload = {
        "name": "Finance review",
        "rule_type": "percentage",
        "sequence": 2,
        "approvers": [a.id for a in people.approvers],
        "percentage_threshold": "60",
    }
    payload.update(overrides)
    return payload


def test_create_percentage_rule(policy_service, store, people):
    rule = policy_service.create_rule(people.admin, _payload(people))

    assert rule.id is not None
    assert rule.rule_type is ApprovalRuleType.PERCENTAGE
    assert rule.sequence == 2
    assert rule.condition == Percentage(Decimal("60"))
    assert [a.approver_name for a in rule.approvers] == ["Finn", "Cleo", "Dev"]
    assert store.audit_log[-1]["action"] == "created"
    assert store.audit_log[-1]["user_id"] == people.admin.id


def test_approvers_accept_dicts_and_drop_duplicates(policy_service, people):
    first = people.approvers[0].id
    rule = policy_service.create_rule(
        people.admin,
        _payload(people, rule_type="unanimous", approvers=[{"approver_id": first}, first], percentage_threshold=None),
    )
    assert [a.approver_id for a in rule.approvers] == [first]
    assert rule.percentage is None


def test_hybrid_rule_keeps_both_parameters(policy_service, people):
    designated = people.approvers[1].id
    rule = policy_service.create_rule(
        people.admin, _payload(people, rule_type="HYBRID", specific_approver_id=designated)
    )
    assert rule.condition == Hybrid(Decimal("60"), designated)


def test_specific_rule_drops_unused_percentage(policy_service, people):
    designated = people.approvers[1].id
    rule = policy_service.create_rule(
        people.admin, _payload(people, rule_type="specific", specific_approver_id=designated)
    )
    assert rule.percentage is None
    assert rule.condition == Designated(designated)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"rule_type": "majority"}, "Invalid rule_type"),
        ({"approvers": []}, "at least one approver"),
        ({"name": "  "}, "name is required"),
        ({"percentage_threshold": None}, "require percentage_threshold"),
        ({"percentage_threshold": "0"}, "greater than 0"),
        ({"percentage_threshold": "120"}, "at most 100"),
        ({"rule_type": "specific", "percentage_threshold": None}, "require specific_approver_id"),
        ({"approvers": [9999]}, "not part of this company"),
        ({"sequence": "first"}, "sequence must be an integer"),
    ],
)
def test_create_rule_validation(policy_service, people, overrides, message):
    with pytest.raises(ValidationError, match=message):
        policy_service.create_rule(people.admin, _payload(people, **overrides))


def test_designated_approver_must_be_listed(policy_service, people):
    with pytest.raises(ValidationError, match="must be one of the rule's approvers"):
        policy_service.create_rule(
            people.admin,
            _payload(people, rule_type="specific", approvers=[people.approvers[0].id], specific_approver_id=people.manager.id),
        )


def test_non_admins_cannot_change_rules(policy_service, store, people):
    rule = policy_service.create_rule(people.admin, _payload(people))

    with pytest.raises(Unauthorized):
        policy_service.create_rule(people.manager, _payload(people))
    with pytest.raises(Unauthorized):
        policy_service.update_rule(people.manager, rule.id, {"name": "x"})
    with pytest.raises(Unauthorized):
        policy_service.delete_rule(people.employee, rule.id)

    assert store.get_rule(rule.id) == rule


def test_update_rule(policy_service, store, people):
    rule = policy_service.create_rule(people.admin, _payload(people))

    updated = policy_service.update_rule(
        people.admin, rule.id, {"rule_type": "unanimous", "approvers": [people.approvers[0].id]}
    )

    assert updated.rule_type is ApprovalRuleType.UNANIMOUS
    assert updated.percentage is None
    assert len(updated.approvers) == 1
    assert store.get_rule(rule.id) == updated
    assert store.audit_log[-1]["action"] == "updated"


def test_update_rejects_unknown_fields(policy_service, people):
    rule = policy_service.create_rule(people.admin, _payload(people))
    with pytest.raises(ValidationError, match="Unknown fields"):
        policy_service.update_rule(people.admin, rule.id, {"company_id": 2})


def test_update_and_delete_missing_rule(policy_service, people):
    with pytest.raises(NotFound):
        policy_service.update_rule(people.admin, 404, {"name": "x"})
    with pytest.raises(NotFound):
        policy_service.delete_rule(people.admin, 404)


def test_delete_rule(policy_service, store, people):
    rule = policy_service.create_rule(people.admin, _payload(people))

    policy_service.delete_rule(people.admin, rule.id)

    assert store.get_rule(rule.id) is None
    assert store.audit_log[-1]["action"] == "deleted"


def test_list_rules_is_ordered_by_sequence(policy_service, people):
    policy_service.create_rule(people.admin, _payload(people, name="late", sequence=3))
    policy_service.create_rule(people.admin, _payload(people, name="early", sequence=1))

    assert [rule.name for rule in policy_service.list_rules(people.admin)] == ["early", "late"]
