"""
Role-Based Access Control – role hierarchy, capability checks and
visibility scoping.
"""

from typing import List

from finvault.directory import IdentityDirectory
from finvault.models import Capability, Identity, Role
from finvault.permissions import PermissionMatrix


def rank(role: Role) -> int:
    """Position of *role* in the hierarchy (SUPER_ADMIN=4 ... CUSTOMER=1)."""
    return role.rank


class AuthorizationEngine:
    """Answers "may actor X do Y to Z" from the matrix and the directory."""

    def __init__(self, matrix: PermissionMatrix, directory: IdentityDirectory):
        self.matrix = matrix
        self.directory = directory

    def has_permission(self, actor: Identity, capability: Capability) -> bool:
        return self.matrix.check(actor.role, capability)

    def can_impersonate(self, actor: Identity, target: Identity) -> bool:
        """Strict rank descent only; nobody impersonates themselves or a peer."""
        if actor.id == target.id:
            return False
        return rank(actor.role) > rank(target.role)

    def can_view_audit_log(self, actor: Identity) -> bool:
        return self.has_permission(actor, Capability.ADMIN_MODULES)

    def can_manage_permissions(self, actor: Identity) -> bool:
        return actor.role is Role.SUPER_ADMIN

    def visible_identities(self, actor: Identity) -> List[Identity]:
        """Identities *actor* may see or manage, in directory order.

        Role decides which classes of identity are candidates; the matrix
        must also grant the matching capability (ASSOCIATES for associates,
        CUSTOMERS for customers). Super admins see everyone but themselves.
        """
        identities = self.directory.list()

        if actor.role is Role.SUPER_ADMIN:
            return [u for u in identities if u.id != actor.id]

        can_see_associates = self.has_permission(actor, Capability.ASSOCIATES)
        can_see_customers = self.has_permission(actor, Capability.CUSTOMERS)

        if actor.role is Role.ADMIN:
            return [
                u for u in identities
                if (u.role is Role.ASSOCIATE and can_see_associates)
                or (u.role is Role.CUSTOMER and can_see_customers)
            ]

        if actor.role is Role.ASSOCIATE:
            if not can_see_customers:
                return []
            return [
                u for u in identities
                if u.role is Role.CUSTOMER and u.assigned_to == actor.id
            ]

        return []

    def can_view(self, actor: Identity, target: Identity) -> bool:
        return any(u.id == target.id for u in self.visible_identities(actor))
