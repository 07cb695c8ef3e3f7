"""
Unit tests for RBAC – role hierarchy, impersonation eligibility and
visibility scoping.
"""

from finvault.models import Capability, Identity, Role
from finvault.rbac import rank


def ids(identities):
    return [u.id for u in identities]


# ── Tests: rank ──────────────────────────────────────────────────────

def test_rank_strictly_decreasing():
    order = [Role.SUPER_ADMIN, Role.ADMIN, Role.ASSOCIATE, Role.CUSTOMER]
    ranks = [rank(r) for r in order]
    assert ranks == [4, 3, 2, 1]
    assert all(a > b for a, b in zip(ranks, ranks[1:]))


def test_role_tokens_round_trip():
    for role in Role:
        assert Role(role.value) is role
    for cap in Capability:
        assert Capability(cap.value) is cap


# ── Tests: can_impersonate ───────────────────────────────────────────

def test_cannot_impersonate_self(portal, users):
    for u in users.values():
        assert portal.engine.can_impersonate(u, u) is False


def test_impersonation_requires_strict_descent(portal, users):
    engine = portal.engine
    assert engine.can_impersonate(users["bob"], users["david"]) is True
    assert engine.can_impersonate(users["david"], users["bob"]) is False
    assert engine.can_impersonate(users["bob"], users["charlie"]) is False
    assert engine.can_impersonate(users["alice"], users["bob"]) is True
    assert engine.can_impersonate(users["david"], users["frank"]) is True
    assert engine.can_impersonate(users["frank"], users["isabella"]) is False


def test_impersonation_ignores_matrix(portal, users):
    for cap in Capability:
        portal.matrix.set(Role.ADMIN, cap, False)
    assert portal.engine.can_impersonate(users["bob"], users["david"]) is True


# ── Tests: has_permission / audit visibility ─────────────────────────

def test_has_permission_reads_matrix(portal, users):
    assert portal.engine.has_permission(users["david"], Capability.EDIT_CUSTOMERS) is True
    portal.matrix.set(Role.ASSOCIATE, Capability.EDIT_CUSTOMERS, False)
    assert portal.engine.has_permission(users["david"], Capability.EDIT_CUSTOMERS) is False


def test_can_view_audit_log_follows_admin_modules(portal, users):
    assert portal.engine.can_view_audit_log(users["alice"]) is True
    assert portal.engine.can_view_audit_log(users["bob"]) is False
    portal.matrix.set(Role.ADMIN, Capability.ADMIN_MODULES, True)
    assert portal.engine.can_view_audit_log(users["bob"]) is True


def test_only_super_admin_manages_permissions(portal, users):
    assert portal.engine.can_manage_permissions(users["alice"]) is True
    assert portal.engine.can_manage_permissions(users["bob"]) is False


# ── Tests: visible_identities ────────────────────────────────────────

def test_super_admin_sees_everyone_but_self(portal, users):
    visible = ids(portal.engine.visible_identities(users["alice"]))
    assert "a" not in visible
    assert visible == ["b", "c", "d", "e", "f_acc", "i_acc"]


def test_super_admin_visibility_ignores_matrix(portal, users):
    portal.matrix.set(Role.SUPER_ADMIN, Capability.CUSTOMERS, False)
    assert "f_acc" in ids(portal.engine.visible_identities(users["alice"]))


def test_admin_sees_associates_and_customers(portal, users):
    visible = ids(portal.engine.visible_identities(users["bob"]))
    assert visible == ["d", "e", "f_acc", "i_acc"]


def test_admin_without_associates_capability(portal, users):
    portal.matrix.set(Role.ADMIN, Capability.ASSOCIATES, False)
    visible = portal.engine.visible_identities(users["bob"])
    assert all(u.role is not Role.ASSOCIATE for u in visible)
    assert ids(visible) == ["f_acc", "i_acc"]


def test_admin_without_customers_capability(portal, users):
    portal.matrix.set(Role.ADMIN, Capability.CUSTOMERS, False)
    assert ids(portal.engine.visible_identities(users["bob"])) == ["d", "e"]


def test_associate_sees_only_assigned_customers(portal, users):
    assert ids(portal.engine.visible_identities(users["david"])) == ["f_acc"]
    assert ids(portal.engine.visible_identities(users["eve"])) == ["i_acc"]


def test_associate_without_customers_capability_sees_nothing(portal, users):
    portal.matrix.set(Role.ASSOCIATE, Capability.CUSTOMERS, False)
    assert portal.engine.visible_identities(users["david"]) == []


def test_whole_family_does_not_affect_visibility(portal, users):
    before = ids(portal.engine.visible_identities(users["bob"]))
    portal.matrix.set(Role.ADMIN, Capability.WHOLE_FAMILY, True)
    portal.matrix.set(Role.CUSTOMER, Capability.WHOLE_FAMILY, False)
    assert ids(portal.engine.visible_identities(users["bob"])) == before
    assert ids(portal.engine.visible_identities(users["david"])) == ["f_acc"]


def test_customer_sees_nothing(portal, users):
    assert portal.engine.visible_identities(users["frank"]) == []


def test_visibility_reflects_directory_changes(portal, users):
    portal.directory.add(
        Identity("g_acc", "Grace Family", "grace@client.com", Role.CUSTOMER, assigned_to="d")
    )
    assert ids(portal.engine.visible_identities(users["david"])) == ["f_acc", "g_acc"]


def test_can_view(portal, users):
    assert portal.engine.can_view(users["david"], users["frank"]) is True
    assert portal.engine.can_view(users["david"], users["isabella"]) is False
