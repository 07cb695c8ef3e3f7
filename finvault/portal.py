"""
Composition root: builds one fully wired, self-contained access core.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from finvault.admin import AdminService
from finvault.audit import AuditLog
from finvault.config import DELETE_POLICY
from finvault.directory import DeletePolicy, IdentityDirectory
from finvault.models import Asset, Capability, FamilyMember, Identity, Role
from finvault.permissions import PermissionMatrix
from finvault.portfolio import PortfolioStore
from finvault.rbac import AuthorizationEngine
from finvault.seed import default_assets, default_family_members, default_identities
from finvault.session import Session, SessionRegistry


@dataclass
class Portal:
    matrix: PermissionMatrix
    directory: IdentityDirectory
    audit: AuditLog
    engine: AuthorizationEngine
    admin: AdminService
    portfolios: PortfolioStore
    sessions: SessionRegistry

    def new_session(self) -> Session:
        return Session(self.directory, self.engine, self.audit)


def create_portal(
    identities: Optional[Iterable[Identity]] = None,
    grants: Optional[Mapping[Role, Mapping[Capability, bool]]] = None,
    members: Optional[Iterable[FamilyMember]] = None,
    assets: Optional[Iterable[Asset]] = None,
    audit: Optional[AuditLog] = None,
    on_delete: str = DELETE_POLICY,
) -> Portal:
    """Build a portal from seed data; omitted pieces fall back to the demo set."""
    matrix = PermissionMatrix(grants)
    directory = IdentityDirectory(
        default_identities() if identities is None else identities,
        on_delete=DeletePolicy(on_delete),
    )
    if audit is None:
        audit = AuditLog()
    engine = AuthorizationEngine(matrix, directory)
    portfolios = PortfolioStore(
        engine, audit,
        members=default_family_members() if members is None else members,
        assets=default_assets() if assets is None else assets,
    )
    return Portal(
        matrix=matrix,
        directory=directory,
        audit=audit,
        engine=engine,
        admin=AdminService(directory, matrix, engine, audit),
        portfolios=portfolios,
        sessions=SessionRegistry(directory, engine, audit),
    )
