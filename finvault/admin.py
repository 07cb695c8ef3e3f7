"""
Audited administrative operations: identity CRUD and matrix edits.

Every successful mutation appends exactly one audit entry; every refused
one appends a CRITICAL entry and returns False. Rights are judged on the
presented identity, which is the target while impersonating.
"""

from typing import List, Optional

from finvault.audit import AuditLog
from finvault.directory import IdentityDirectory
from finvault.models import (
    AuditAction,
    AuditLogEntry,
    Capability,
    Identity,
    Role,
    RolePermissionRow,
    Severity,
)
from finvault.permissions import PermissionMatrix
from finvault.rbac import AuthorizationEngine, rank
from finvault.reports import export_audit_csv
from finvault.session import Session


class AdminService:
    def __init__(self, directory: IdentityDirectory, matrix: PermissionMatrix,
                 engine: AuthorizationEngine, audit: AuditLog):
        self.directory = directory
        self.matrix = matrix
        self.engine = engine
        self.audit = audit

    @staticmethod
    def _presented(session: Session) -> Identity:
        """The identity whose console is on screen (the target while impersonating)."""
        session.require_actor()
        return session.current_user

    def _deny(self, session: Session, details: str, target_id: Optional[str] = None,
              action: str = AuditAction.ACCESS_DENIED) -> bool:
        actor_id, acting_as_id = session.audit_context()
        self.audit.append(
            actor_id=actor_id,
            acting_as_id=acting_as_id,
            target_id=target_id,
            action=action,
            details=details,
            severity=Severity.CRITICAL,
        )
        return False

    def _record(self, session: Session, action: str, details: str,
                severity: Severity = Severity.INFO) -> AuditLogEntry:
        actor_id, acting_as_id = session.audit_context()
        return self.audit.append(
            actor_id=actor_id,
            acting_as_id=acting_as_id,
            action=action,
            details=details,
            severity=severity,
        )

    # ── Identities ───────────────────────────────────────────────────

    @staticmethod
    def _may_assign_role(actor: Identity, role: Role) -> bool:
        """Only super admins may grant a role at or above their own rank."""
        return actor.role is Role.SUPER_ADMIN or rank(role) < rank(actor.role)

    def create_identity(self, session: Session, identity: Identity) -> bool:
        actor = self._presented(session)
        if not self.engine.has_permission(actor, Capability.EDIT_CUSTOMERS):
            return self._deny(session, f"{actor.name} may not create users", identity.id)
        if not self._may_assign_role(actor, identity.role):
            return self._deny(
                session,
                f"{actor.name} may not create a {identity.role.value} user",
                identity.id,
            )

        self.directory.add(identity)
        self._record(
            session, AuditAction.USER_CREATE,
            f"Created new user: {identity.name} with role {identity.role.value}",
        )
        return True

    def update_identity(self, session: Session, identity_id: str, **fields) -> bool:
        actor = self._presented(session)
        target = self.directory.find(identity_id)
        if target is None:
            return False
        if not (self.engine.has_permission(actor, Capability.EDIT_CUSTOMERS)
                and self.engine.can_view(actor, target)):
            return self._deny(session, f"{actor.name} may not update {target.name}", target.id)
        new_role = Role(fields.get("role", target.role))
        if not self._may_assign_role(actor, new_role):
            return self._deny(
                session, f"{actor.name} may not make {target.name} {new_role.value}", target.id
            )

        self.directory.update(identity_id, **fields)
        self._record(session, AuditAction.USER_UPDATE, f"Updated user {identity_id} details")
        return True

    def delete_identity(self, session: Session, identity_id: str) -> bool:
        actor = self._presented(session)
        target = self.directory.find(identity_id)
        if target is None:
            return False
        if not (self.engine.has_permission(actor, Capability.DELETE_CASCADE)
                and self.engine.can_view(actor, target)):
            return self._deny(session, f"{actor.name} may not delete {target.name}", target.id)

        self.directory.delete(identity_id)
        self._record(
            session, AuditAction.USER_DELETE,
            f"Deleted user: {target.name} ({target.id})",
            severity=Severity.CRITICAL,
        )
        return True

    # ── Permission matrix ────────────────────────────────────────────

    def permission_matrix(self, session: Session) -> List[RolePermissionRow]:
        session.require_actor()
        return self.matrix.rows()

    def set_permission(self, session: Session, role: Role, capability: Capability,
                       value: bool) -> bool:
        actor = self._presented(session)
        if not self.engine.can_manage_permissions(actor):
            return self._deny(
                session,
                f"{actor.name} attempted to set {role.value} capability {capability.value}",
                action=AuditAction.MATRIX_UPDATE_DENIED,
            )

        if not self.matrix.set(role, capability, value):
            return False
        self._record(
            session, AuditAction.MATRIX_UPDATE,
            f"Updated {role.value} capability: {capability.value} = {bool(value)}",
            severity=Severity.WARNING,
        )
        return True

    def toggle_permission(self, session: Session, role: Role, capability: Capability) -> bool:
        actor = self._presented(session)
        if not self.engine.can_manage_permissions(actor):
            return self._deny(
                session,
                f"{actor.name} attempted to toggle {role.value} capability {capability.value}",
                action=AuditAction.MATRIX_UPDATE_DENIED,
            )

        value = self.matrix.toggle(role, capability)
        if value is None:
            return False
        self._record(
            session, AuditAction.MATRIX_UPDATE,
            f"Updated {role.value} capability: {capability.value} = {value}",
            severity=Severity.WARNING,
        )
        return True

    # ── Audit log ────────────────────────────────────────────────────

    def audit_log(self, session: Session) -> List[AuditLogEntry]:
        """Entries for viewers holding ADMIN_MODULES, otherwise nothing."""
        viewer = session.current_user
        if viewer is None or not self.engine.can_view_audit_log(viewer):
            return []
        return self.audit.list()

    def export_audit_log(self, session: Session, path: str) -> Optional[int]:
        """Write the audit log to CSV. Needs ADMIN_MODULES and DOWNLOAD_PDF."""
        viewer = self._presented(session)
        if not (self.engine.can_view_audit_log(viewer)
                and self.engine.has_permission(viewer, Capability.DOWNLOAD_PDF)):
            self._deny(session, f"{viewer.name} may not export the audit log")
            return None

        count = export_audit_csv(self.audit.list(), path)
        self._record(session, AuditAction.AUDIT_EXPORT,
                     f"Exported {count} audit entries to {path}", Severity.WARNING)
        return count
