"""
Domain enums and dataclasses used across the access core.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class Role(str, Enum):
    """Portal roles; the token string equals the member name."""
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    ASSOCIATE = "ASSOCIATE"
    CUSTOMER = "CUSTOMER"

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


ROLE_RANKS = {
    Role.SUPER_ADMIN: 4,
    Role.ADMIN: 3,
    Role.ASSOCIATE: 2,
    Role.CUSTOMER: 1,
}


class Capability(str, Enum):
    """Role-scoped permission bits stored in the permission matrix."""
    ADMIN_MODULES = "ADMIN_MODULES"
    ASSOCIATES = "ASSOCIATES"
    CUSTOMERS = "CUSTOMERS"
    WHOLE_FAMILY = "WHOLE_FAMILY"
    EDIT_CUSTOMERS = "EDIT_CUSTOMERS"
    DELETE_CASCADE = "DELETE_CASCADE"
    DOWNLOAD_PDF = "DOWNLOAD_PDF"


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AuditAction:
    """Category tags written to the audit log."""
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    IMPERSONATION_START = "IMPERSONATION_START"
    IMPERSONATION_STOP = "IMPERSONATION_STOP"
    IMPERSONATION_DENIED = "IMPERSONATION_DENIED"
    USER_CREATE = "USER_CREATE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"
    ACCESS_DENIED = "ACCESS_DENIED"
    MATRIX_UPDATE = "MATRIX_UPDATE"
    MATRIX_UPDATE_DENIED = "MATRIX_UPDATE_DENIED"
    ASSET_CREATE = "ASSET_CREATE"
    ASSET_DELETE = "ASSET_DELETE"
    FAMILY_MEMBER_CREATE = "FAMILY_MEMBER_CREATE"
    FAMILY_MEMBER_DELETE = "FAMILY_MEMBER_DELETE"
    DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"
    DOCUMENT_DOWNLOAD = "DOCUMENT_DOWNLOAD"
    AUDIT_EXPORT = "AUDIT_EXPORT"


class AssetType(str, Enum):
    STOCKS = "Stocks"
    FIXED_DEPOSITS = "Fixed Deposits"
    MUTUAL_FUNDS = "Mutual Funds"
    BONDS = "Bonds"
    PPF = "PPF"
    LIFE_INSURANCE = "Life Insurance"
    TERM_INSURANCE = "Term Insurance"


@dataclass(frozen=True)
class Identity:
    """A portal user. Customers may be assigned to one associate."""
    id: str
    name: str
    email: str
    role: Role
    assigned_to: Optional[str] = None  # associate id, customers only


@dataclass(frozen=True)
class AuditLogEntry:
    """One immutable audit record."""
    id: str
    actor_id: str              # real, authenticated identity
    action: str
    details: str
    timestamp: datetime        # timezone-aware UTC
    severity: Severity
    acting_as_id: Optional[str] = None
    target_id: Optional[str] = None
    sequence: int = 0          # insertion order, breaks timestamp ties

    @property
    def timestamp_iso(self) -> str:
        return self.timestamp.isoformat()


@dataclass
class RolePermissionRow:
    """One row of the permission matrix as handed to callers."""
    role: Role
    permissions: Dict[Capability, bool]


@dataclass(frozen=True)
class SessionState:
    """Snapshot of a session's identities."""
    current_user: Optional[Identity]
    acting_user: Optional[Identity]
    is_impersonating: bool


@dataclass(frozen=True)
class FamilyMember:
    id: str
    family_id: str             # owning customer id
    name: str
    relationship: str


@dataclass(frozen=True)
class Asset:
    id: str
    family_id: str
    member_id: str
    type: AssetType
    value: float
    details: Dict[str, Any] = field(default_factory=dict)
    last_updated: str = ""     # YYYY-MM-DD


@dataclass(frozen=True)
class Document:
    id: str
    family_id: str
    member_id: str
    category: str              # AssetType value, ID_PROOF or TAX_FORMS
    file_name: str
    file_size: str
    upload_date: str = ""      # YYYY-MM-DD
