"""
Unit tests for the per-action policy table.
"""

import pytest

from schoolhub.core.policy import (
    ACTION_POLICIES,
    SUPERADMIN_ONLY,
    Action,
    ActionPolicy,
    PolicyConfigurationError,
    RateLimitRule,
    validate_policy_table,
)


class TestActionPolicies:
    def test_table_is_complete(self):
        validate_policy_table(ACTION_POLICIES)

    def test_every_action_has_a_policy(self):
        for action in Action:
            assert action in ACTION_POLICIES

    def test_school_management_is_superadmin_only(self):
        for action in Action:
            if action.resource == "schools":
                assert ACTION_POLICIES[action].allowed_roles == SUPERADMIN_ONLY

    def test_login_is_public_and_rate_limited(self):
        policy = ACTION_POLICIES[Action.AUTH_LOGIN]
        assert policy.allowed_roles is None
        assert policy.rate_limit is not None

    def test_action_resource_and_operation(self):
        action = Action.TRANSFER_REQUESTS_APPROVE
        assert action.resource == "transfer_requests"
        assert action.operation == "approve"


class TestValidatePolicyTable:
    def test_missing_action_fails(self):
        policies = dict(ACTION_POLICIES)
        del policies[Action.STUDENTS_DELETE]

        with pytest.raises(PolicyConfigurationError) as exc_info:
            validate_policy_table(policies)
        assert "students.delete" in str(exc_info.value)

    def test_unknown_action_fails(self):
        policies = {**ACTION_POLICIES, "students.promote": ActionPolicy(SUPERADMIN_ONLY)}

        with pytest.raises(PolicyConfigurationError) as exc_info:
            validate_policy_table(policies)
        assert "students.promote" in str(exc_info.value)

    def test_zero_window_fails(self):
        policies = {
            **ACTION_POLICIES,
            Action.AUTH_LOGIN: ActionPolicy(None, RateLimitRule(10, 0)),
        }

        with pytest.raises(PolicyConfigurationError):
            validate_policy_table(policies)
