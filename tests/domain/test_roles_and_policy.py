"""
Role ordering and the authorization policy table.

The policy is pure, so these are property tests over every (role, action)
pair rather than database tests.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from printshop_kernel.domain.roles import Action, Actor, Role
from printshop_kernel.exceptions import UnauthorizedError
from printshop_services.authorization import (
    ACTION_MINIMUM_ROLE,
    can_perform,
    check_authorization,
    require_authorization,
)

roles = st.sampled_from(list(Role))
actions = st.sampled_from(list(Action))

MODERATOR_ACTIONS = {
    Action.SUBMIT_BUDGET,
    Action.APPROVE_BUDGET,
    Action.REJECT_BUDGET,
    Action.CONVERT_BUDGET_TO_ORDER,
    Action.DELETE_ORDER,
}


class TestRoleOrdering:
    def test_declared_order(self):
        assert Role.USER < Role.MODERATOR < Role.ADMIN
        assert sorted([Role.ADMIN, Role.USER, Role.MODERATOR]) == [
            Role.USER,
            Role.MODERATOR,
            Role.ADMIN,
        ]

    @given(roles, roles)
    def test_total_order(self, a, b):
        assert (a < b) + (a == b) + (a > b) == 1

    @given(roles, roles, roles)
    def test_transitive(self, a, b, c):
        if a <= b and b <= c:
            assert a <= c

    def test_rank_not_name_decides(self):
        # Alphabetically "ADMIN" < "USER"; by rank it is the other way round
        assert Role.ADMIN > Role.USER
        assert max(Role) is Role.ADMIN

    @pytest.mark.parametrize("raw", ["admin", " Moderator ", "USER"])
    def test_parse_is_case_insensitive(self, raw):
        assert Role.parse(raw).value == raw.strip().upper()

    def test_parse_unknown_role(self):
        with pytest.raises(ValueError, match="Unknown role"):
            Role.parse("SUPERUSER")

    def test_actor_accepts_role_name(self):
        actor = Actor(9, "moderator")
        assert actor.role is Role.MODERATOR
        assert actor.log_fields == {"actor_id": "9", "actor_role": "MODERATOR"}


class TestPolicyTable:
    def test_every_action_has_a_minimum_role(self):
        assert set(ACTION_MINIMUM_ROLE) == set(Action)

    def test_moderator_actions(self):
        elevated = {a for a, r in ACTION_MINIMUM_ROLE.items() if r is Role.MODERATOR}
        assert elevated == MODERATOR_ACTIONS

    @given(roles, actions)
    def test_can_perform_matches_rank(self, role, action):
        assert can_perform(role, action) == (role >= ACTION_MINIMUM_ROLE[action])

    @given(actions)
    def test_higher_role_never_loses_permission(self, action):
        for lower, higher in ((Role.USER, Role.MODERATOR), (Role.MODERATOR, Role.ADMIN)):
            if can_perform(lower, action):
                assert can_perform(higher, action)

    @given(st.sampled_from(sorted(MODERATOR_ACTIONS)))
    def test_user_is_always_denied_workflow_actions(self, action):
        allowed, reason = check_authorization(Role.USER, action)
        assert allowed is False
        assert "MODERATOR" in reason

    def test_admin_can_do_everything(self):
        assert all(can_perform(Role.ADMIN, a) for a in Action)

    def test_unknown_action_is_denied(self):
        allowed, reason = check_authorization(Role.ADMIN, "archive_budget")
        assert allowed is False
        assert "archive_budget" in reason


class TestRequireAuthorization:
    def test_denial_raises_with_reason(self, captured_logs):
        with pytest.raises(UnauthorizedError) as exc_info:
            require_authorization(Actor(5, Role.USER), Action.APPROVE_BUDGET)

        err = exc_info.value
        assert err.code == "UNAUTHORIZED"
        assert err.http_status == 403
        assert err.role == "USER"
        assert err.action == "approve_budget"

        denied = [r for r in captured_logs() if r["message"] == "authorization_denied"]
        assert len(denied) == 1

    def test_allowed_returns_quietly(self):
        require_authorization(Actor(5, Role.MODERATOR), Action.SUBMIT_BUDGET)
