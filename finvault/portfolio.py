"""
Family portfolios – members, assets and documents held under a customer
account.

A family is reachable when it is the presented identity itself or lies in
the real actor's visibility scope. Capability checks use the real actor, so
an associate working inside a customer's portfolio is held to the
associate's grants.
"""

import logging
import threading
import uuid
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from finvault.audit import AuditLog
from finvault.models import (
    Asset,
    AssetType,
    AuditAction,
    Capability,
    Document,
    FamilyMember,
    Identity,
    Role,
    Severity,
)
from finvault.rbac import AuthorizationEngine
from finvault.session import Session

logger = logging.getLogger(__name__)

PRIMARY_RELATIONSHIP = "Primary"
DOCUMENT_CATEGORIES = {t.value for t in AssetType} | {"ID_PROOF", "TAX_FORMS"}


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


class PortfolioStore:
    def __init__(self, engine: AuthorizationEngine, audit: AuditLog,
                 members: Iterable[FamilyMember] = (), assets: Iterable[Asset] = (),
                 documents: Iterable[Document] = ()):
        self.engine = engine
        self.audit = audit
        self._members: List[FamilyMember] = list(members)
        self._assets: List[Asset] = list(assets)
        self._documents: List[Document] = list(documents)
        self._lock = threading.Lock()

    # ── Helpers ──────────────────────────────────────────────────────

    def _in_scope(self, session: Session, family_id: str) -> bool:
        actor = session.require_actor()
        if family_id in (actor.id, session.current_user.id):
            return True
        family = self.engine.directory.find(family_id)
        if family is None:
            # Records of a deleted customer stay reachable for super admins.
            return actor.role is Role.SUPER_ADMIN
        return self.engine.can_view(actor, family)

    def _allowed(self, session: Session, *capabilities: Capability) -> bool:
        actor = session.require_actor()
        return all(self.engine.has_permission(actor, c) for c in capabilities)

    def _permits(self, session: Session, family: Identity, *capabilities: Capability) -> bool:
        return self._in_scope(session, family.id) and self._allowed(session, *capabilities)

    def _record(self, session: Session, family_id: str, action: str, details: str,
                severity: Severity = Severity.INFO) -> None:
        actor = session.require_actor()
        self.audit.append(
            actor_id=actor.id,
            acting_as_id=family_id if actor.id != family_id else None,
            action=action,
            details=details,
            severity=severity,
        )

    def _deny(self, session: Session, family_id: str, details: str) -> bool:
        actor = session.require_actor()
        self.audit.append(
            actor_id=actor.id,
            target_id=family_id,
            action=AuditAction.ACCESS_DENIED,
            details=details,
            severity=Severity.CRITICAL,
        )
        return False

    # ── Family members ───────────────────────────────────────────────

    def family_members(self, session: Session, family_id: str) -> List[FamilyMember]:
        """All members with WHOLE_FAMILY, otherwise only the primary holder."""
        if not self._in_scope(session, family_id):
            return []
        members = [m for m in self._members if m.family_id == family_id]
        if self._allowed(session, Capability.WHOLE_FAMILY):
            return members
        return [m for m in members if m.relationship == PRIMARY_RELATIONSHIP]

    def add_family_member(self, session: Session, family: Identity, name: str,
                          relationship: str) -> Optional[FamilyMember]:
        if not self._permits(session, family, Capability.EDIT_CUSTOMERS, Capability.WHOLE_FAMILY):
            self._deny(session, family.id, f"Family member change refused for {family.name}")
            return None

        member = FamilyMember(id=_new_id(), family_id=family.id, name=name,
                              relationship=relationship)
        with self._lock:
            self._members.append(member)
        self._record(session, family.id, AuditAction.FAMILY_MEMBER_CREATE,
                     f"Added {relationship} {name} to {family.name}")
        return member

    def delete_family_member(self, session: Session, family: Identity, member_id: str) -> bool:
        member = next((m for m in self._members
                       if m.id == member_id and m.family_id == family.id), None)
        if member is None:
            return False
        if not self._permits(session, family, Capability.DELETE_CASCADE, Capability.WHOLE_FAMILY):
            return self._deny(session, family.id, f"Family member removal refused for {family.name}")

        with self._lock:
            self._members = [m for m in self._members if m.id != member_id]
        self._record(session, family.id, AuditAction.FAMILY_MEMBER_DELETE,
                     f"Removed {member.name} from {family.name}", Severity.WARNING)
        return True

    # ── Assets ───────────────────────────────────────────────────────

    def assets(self, session: Session, family_id: str,
               member_id: Optional[str] = None) -> List[Asset]:
        visible = {m.id for m in self.family_members(session, family_id)}
        return [
            a for a in self._assets
            if a.family_id == family_id
            and a.member_id in visible
            and (member_id is None or a.member_id == member_id)
        ]

    def net_worth(self, session: Session, family_id: str,
                  member_id: Optional[str] = None) -> float:
        return sum(a.value for a in self.assets(session, family_id, member_id))

    def totals_by_type(self, session: Session, family_id: str) -> Dict[AssetType, float]:
        totals = {t: 0.0 for t in AssetType}
        for asset in self.assets(session, family_id):
            totals[asset.type] += asset.value
        return totals

    def add_asset(self, session: Session, family: Identity, member_id: str,
                  asset_type: AssetType, value: float,
                  details: Optional[Dict[str, Any]] = None) -> Optional[Asset]:
        if not self._permits(session, family, Capability.EDIT_CUSTOMERS):
            self._deny(session, family.id, f"Asset change refused for {family.name}")
            return None
        if value < 0:
            raise ValueError("Asset value cannot be negative.")

        asset = Asset(
            id=_new_id(),
            family_id=family.id,
            member_id=member_id,
            type=AssetType(asset_type),
            value=value,
            details=dict(details or {}),
            last_updated=date.today().isoformat(),
        )
        with self._lock:
            self._assets.append(asset)
        self._record(session, family.id, AuditAction.ASSET_CREATE,
                     f"Added {asset.type.value} worth ${asset.value:,.2f} for {family.name}")
        return asset

    def delete_asset(self, session: Session, family: Identity, asset_id: str) -> bool:
        asset = next((a for a in self._assets
                      if a.id == asset_id and a.family_id == family.id), None)
        if asset is None:
            return False
        if not self._permits(session, family, Capability.DELETE_CASCADE):
            return self._deny(session, family.id, f"Asset removal refused for {family.name}")

        with self._lock:
            self._assets = [a for a in self._assets if a.id != asset_id]
        self._record(session, family.id, AuditAction.ASSET_DELETE,
                     f"Removed {asset.type.value} worth ${asset.value:,.2f} from {family.name}",
                     Severity.WARNING)
        logger.info("Asset %s deleted from family %s", asset_id, family.id)
        return True

    # ── Documents ────────────────────────────────────────────────────

    def documents(self, session: Session, family_id: str,
                  category: Optional[str] = None) -> List[Document]:
        if not self._in_scope(session, family_id):
            return []
        return [
            d for d in self._documents
            if d.family_id == family_id and (category is None or d.category == category)
        ]

    def add_document(self, session: Session, family: Identity, member_id: str,
                     category: str, file_name: str, file_size: str) -> Optional[Document]:
        if not self._permits(session, family, Capability.EDIT_CUSTOMERS):
            self._deny(session, family.id, f"Document upload refused for {family.name}")
            return None
        if category not in DOCUMENT_CATEGORIES:
            raise ValueError(f"Unknown document category '{category}'.")

        doc = Document(
            id=_new_id(),
            family_id=family.id,
            member_id=member_id,
            category=category,
            file_name=file_name,
            file_size=file_size,
            upload_date=date.today().isoformat(),
        )
        with self._lock:
            self._documents.append(doc)
        self._record(session, family.id, AuditAction.DOCUMENT_UPLOAD,
                     f"Uploaded {category} document {file_name} for {family.name}")
        return doc

    def download_document(self, session: Session, family: Identity,
                          document_id: str) -> Optional[Document]:
        """Release a document for download; DOWNLOAD_PDF is required."""
        doc = next((d for d in self._documents
                    if d.id == document_id and d.family_id == family.id), None)
        if doc is None:
            return None
        if not self._permits(session, family, Capability.DOWNLOAD_PDF):
            self._deny(session, family.id, f"Document download refused for {family.name}")
            return None

        self._record(session, family.id, AuditAction.DOCUMENT_DOWNLOAD,
                     f"Downloaded {doc.file_name} from {family.name}")
        return doc
