"""Tests pour core/rbac/checker.py"""
from core.rbac.checker import ActionDecision, RBACChecker


class TestRBACChecker:
    """Tests pour RBACChecker"""

    def test_stories_read_and_create_for_everyone(self):
        checker = RBACChecker()
        for role in ("admin", "user"):
            assert checker.can(role=role, action="read", resource="stories")
            assert checker.can(role=role, action="create", resource="stories")

    def test_story_update_owner_only_for_user(self):
        checker = RBACChecker()
        assert checker.decision(role="user", action="update", resource="stories") == ActionDecision(
            allowed=True, owner_only=True
        )
        assert checker.decision(role="admin", action="delete", resource="stories") == ActionDecision(
            allowed=True, owner_only=False
        )

    def test_moderation_admin_only(self):
        checker = RBACChecker()
        assert checker.can(role="admin", action="moderate", resource="stories")
        assert not checker.can(role="user", action="moderate", resource="stories")

    def test_tags_write_admin_but_quick_create_for_all(self):
        checker = RBACChecker()
        assert not checker.can(role="user", action="create", resource="tags")
        assert checker.can(role="user", action="quick_create", resource="tags")
        assert checker.can(role="admin", action="delete", resource="tags")

    def test_user_roles_never_writable_by_user(self):
        checker = RBACChecker()
        assert not checker.can(role="user", action="grant", resource="user_roles")
        assert tuple(checker.roles_for(action="grant", resource="user_roles")) == ("admin",)

    def test_unknown_resource_or_role(self):
        checker = RBACChecker()
        assert not checker.can(role="admin", action="read", resource="invoices")
        assert not checker.can(role="guest", action="read", resource="stories")
        assert checker.decision(role="guest", action="read", resource="stories") == ActionDecision(
            allowed=False, owner_only=False
        )

    def test_custom_matrix(self):
        checker = RBACChecker({"reports": {"read": {"user": "any"}}})
        assert checker.can(role="user", action="read", resource="reports")
        assert not checker.can(role="user", action="read", resource="stories")

    def test_admin_console_rows(self):
        checker = RBACChecker()
        for action in ("read", "block", "delete", "reset_password"):
            assert checker.roles_for(action=action, resource="profiles") == ("admin",)
        assert checker.roles_for(action="read", resource="audit_logs") == ("admin",)
        assert not checker.can(role="admin", action="update", resource="profiles")
