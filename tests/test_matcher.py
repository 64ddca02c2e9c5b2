import pytest

from app.rbac.matcher import (
    expand,
    has_all,
    has_any,
    is_valid_permission_slug,
    matches,
    missing,
    normalize_permission_slug,
    normalize_role_slug,
)


class TestMatches:
    def test_exact(self):
        assert matches("users.read", "users.read")
        assert not matches("users.read", "users.write")

    def test_resource_wildcard(self):
        assert matches("users.read", "users.*")
        assert not matches("products.read", "users.*")

    def test_action_wildcard(self):
        assert matches("users.read", "*.read")
        assert not matches("users.write", "*.read")

    @pytest.mark.parametrize("slug", ["users.read", "a.b", "categories.delete", "*"])
    def test_total_wildcard(self, slug):
        assert matches(slug, "*")

    def test_multiple_wildcards(self):
        assert matches("users.read", "us*rs.re*d")
        assert not matches("users.write", "us*rs.re*d")

    def test_star_matches_empty_run(self):
        assert matches("users.read", "users*.read")

    def test_anchored_to_whole_slug(self):
        assert not matches("superusers.read", "users.*")
        assert not matches("users.read.all", "*.read")

    def test_dot_is_literal(self):
        # "." in a pattern must not behave like a regex wildcard.
        assert not matches("usersXread", "users.*")
        assert not matches("users-read", "*.read")

    def test_regex_metacharacters_are_literal(self):
        assert matches("a+b.read", "a+b.*")
        assert not matches("aab.read", "a+b.*")
        assert not matches("users.read", "(users|roles).*")

    def test_case_sensitive(self):
        assert not matches("Users.read", "users.*")

    def test_empty_pattern_never_matches(self):
        assert not matches("users.read", "")
        assert not matches("", "")


class TestCollections:
    def test_has_any(self):
        assert has_any(["users.read", "roles.read"], ["roles.*"])
        assert not has_any(["users.read"], ["roles.*", "*.write"])
        assert not has_any(["users.read"], [])

    def test_has_all(self):
        assert has_all(["users.read", "users.delete"], ["users.*"])
        assert not has_all(["users.read", "roles.read"], ["users.*"])
        assert has_all([], [])

    def test_has_all_accepts_generators(self):
        granted = (slug for slug in ["a.read", "b.*"])
        assert has_all(["a.read", "b.write"], granted)

    def test_missing_keeps_order(self):
        assert missing(["c.read", "a.read", "b.read"], ["a.*"]) == ["c.read", "b.read"]

    def test_expand(self):
        universe = ["users.read", "users.create", "products.read"]
        assert expand("users.*", universe) == ["users.read", "users.create"]
        assert expand("*.read", universe) == ["users.read", "products.read"]
        assert expand("orders.*", universe) == []


class TestSlugs:
    @pytest.mark.parametrize(
        "slug",
        ["*", "users.read", "users.*", "*.read", "product-images.upload", "v2.read"],
    )
    def test_valid(self, slug):
        assert is_valid_permission_slug(slug)

    @pytest.mark.parametrize(
        "slug",
        ["", "   ", "users", "users.", ".read", "a.b.c", "Users.read", "users.re ad", "users_x.read",
         "users.read\n", "users.*\n", "*\n"],
    )
    def test_invalid(self, slug):
        assert not is_valid_permission_slug(slug)

    def test_normalize_permission_slug(self):
        assert normalize_permission_slug("  Users Read ") == "users.read"
        assert normalize_permission_slug("Users.*") == "users.*"
        assert normalize_permission_slug("users.read!") == "users.read"
        assert normalize_permission_slug("users \t\n create") == "users.create"

    def test_normalize_role_slug(self):
        assert normalize_role_slug("  Super Admin ") == "super-admin"
        assert normalize_role_slug("Content_Editor") == "contenteditor"
