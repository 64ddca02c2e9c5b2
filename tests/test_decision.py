from types import SimpleNamespace

import pytest

from app.rbac.decision import (
    MISSING_PERMISSION,
    MISSING_ROLE,
    NO_ROLES,
    AccessRequirement,
    Dimension,
    RoleGrant,
    decide,
    effective_permissions,
    principal_from_user,
)


def role(slug: str, *permissions: str) -> RoleGrant:
    return RoleGrant(slug=slug, permissions=frozenset(permissions))


class TestDecide:
    def test_empty_requirement_allows_anyone(self):
        assert decide([], AccessRequirement()).allowed
        assert decide([role("user")], AccessRequirement()).allowed

    def test_no_roles_denied_for_permission_requirement(self):
        decision = decide([], AccessRequirement(permissions=("users.read",)))
        assert not decision
        assert decision.reason == NO_ROLES

    def test_no_roles_denied_for_role_requirement(self):
        decision = decide([], AccessRequirement(roles=("admin",)))
        assert not decision.allowed
        assert decision.reason == NO_ROLES
        assert decision.dimension is Dimension.ROLES

    def test_roles_are_any_of(self):
        requirement = AccessRequirement(roles=("admin", "editor"))
        assert decide([role("editor")], requirement).allowed
        assert decide([role("viewer"), role("admin")], requirement).allowed

        decision = decide([role("viewer")], requirement)
        assert not decision.allowed
        assert decision.reason == MISSING_ROLE
        assert decision.dimension is Dimension.ROLES

    def test_permissions_are_all_of(self):
        requirement = AccessRequirement(permissions=("a.read", "b.read"))

        decision = decide([role("r", "a.read")], requirement)
        assert not decision.allowed
        assert decision.reason == MISSING_PERMISSION
        assert decision.dimension is Dimension.PERMISSIONS
        assert decision.missing == ("b.read",)

        assert decide([role("r", "a.read", "b.read")], requirement).allowed

    def test_wildcard_on_one_side_is_not_enough(self):
        requirement = AccessRequirement(permissions=("a.read", "b.read"))
        assert not decide([role("r", "a.*")], requirement).allowed
        assert decide([role("r", "a.*", "*.read")], requirement).allowed

    def test_permissions_flatten_across_roles(self):
        requirement = AccessRequirement(permissions=("a.read", "b.read"))
        assert decide([role("one", "a.read"), role("two", "b.*")], requirement).allowed

    def test_granted_wildcard_covers_required_slug(self):
        requirement = AccessRequirement(permissions=("users.read",))
        assert decide([role("r", "users.*")], requirement).allowed
        assert decide([role("r", "*")], requirement).allowed

    def test_roles_checked_before_permissions(self):
        requirement = AccessRequirement(permissions=("users.read",), roles=("admin",))

        decision = decide([role("user")], requirement)
        assert decision.reason == MISSING_ROLE

        decision = decide([role("admin")], requirement)
        assert decision.reason == MISSING_PERMISSION

        assert decide([role("admin", "users.read")], requirement).allowed

    def test_role_only_requirement_ignores_permissions(self):
        requirement = AccessRequirement(roles=("admin",))
        assert decide([role("admin")], requirement).allowed


def test_effective_permissions_deduplicates():
    roles = [role("a", "x.read", "y.read"), role("b", "y.read", "z.*")]
    assert effective_permissions(roles) == ["x.read", "y.read", "z.*"]


def test_principal_from_user_drops_soft_deleted_rows():
    live_perm = SimpleNamespace(slug="users.read", deleted_at=None)
    dead_perm = SimpleNamespace(slug="users.delete", deleted_at="2026-01-01")
    user = SimpleNamespace(
        id=7,
        email="someone@example.com",
        roles=[
            SimpleNamespace(slug="editor", deleted_at=None, permissions=[live_perm, dead_perm]),
            SimpleNamespace(slug="retired", deleted_at="2026-01-01", permissions=[live_perm]),
        ],
    )

    principal = principal_from_user(user)

    assert principal.user_id == 7
    assert principal.role_slugs == frozenset({"editor"})
    assert principal.permissions == ["users.read"]


@pytest.mark.parametrize(
    "requirement",
    [
        AccessRequirement(permissions=("users.read",)),
        AccessRequirement(roles=("admin",)),
        AccessRequirement(permissions=("users.read",), roles=("admin",)),
    ],
)
def test_decision_is_falsy_when_denied(requirement):
    assert not decide([role("guest")], requirement)
