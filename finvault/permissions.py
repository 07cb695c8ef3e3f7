"""
Permission matrix – the single source of truth for role capabilities.
"""

import copy
import logging
import threading
from typing import Dict, List, Mapping, Optional

from finvault.models import Capability, Role, RolePermissionRow

logger = logging.getLogger(__name__)

# ── Default grants ───────────────────────────────────────────────────

DEFAULT_GRANTS: Dict[Role, Dict[Capability, bool]] = {
    Role.SUPER_ADMIN: {
        Capability.ADMIN_MODULES: True,
        Capability.ASSOCIATES: True,
        Capability.CUSTOMERS: True,
        Capability.WHOLE_FAMILY: True,
        Capability.EDIT_CUSTOMERS: True,
        Capability.DELETE_CASCADE: True,
        Capability.DOWNLOAD_PDF: True,
    },
    Role.ADMIN: {
        Capability.ADMIN_MODULES: False,
        Capability.ASSOCIATES: True,
        Capability.CUSTOMERS: True,
        Capability.WHOLE_FAMILY: False,
        Capability.EDIT_CUSTOMERS: True,
        Capability.DELETE_CASCADE: True,
        Capability.DOWNLOAD_PDF: True,
    },
    Role.ASSOCIATE: {
        Capability.ADMIN_MODULES: False,
        Capability.ASSOCIATES: False,
        Capability.CUSTOMERS: True,
        Capability.WHOLE_FAMILY: False,
        Capability.EDIT_CUSTOMERS: True,
        Capability.DELETE_CASCADE: False,
        Capability.DOWNLOAD_PDF: True,
    },
    Role.CUSTOMER: {
        Capability.ADMIN_MODULES: False,
        Capability.ASSOCIATES: False,
        Capability.CUSTOMERS: True,
        Capability.WHOLE_FAMILY: True,
        Capability.EDIT_CUSTOMERS: False,
        Capability.DELETE_CASCADE: False,
        Capability.DOWNLOAD_PDF: True,
    },
}


def _validate_seed(seed: Mapping[Role, Mapping[Capability, bool]]) -> None:
    for role, grants in seed.items():
        if not isinstance(role, Role):
            raise ValueError(f"Unknown role '{role}' in permission seed.")
        missing = [c.value for c in Capability if c not in grants]
        if missing:
            raise ValueError(
                f"Permission seed for {role.value} is missing: {', '.join(missing)}"
            )


class PermissionMatrix:
    """Mutable (role, capability) -> bool table with serialised writes."""

    def __init__(self, seed: Optional[Mapping[Role, Mapping[Capability, bool]]] = None):
        seed = DEFAULT_GRANTS if seed is None else seed
        _validate_seed(seed)
        self._table: Dict[Role, Dict[Capability, bool]] = {
            role: {cap: bool(grants[cap]) for cap in Capability}
            for role, grants in seed.items()
        }
        self._lock = threading.Lock()

    def get(self, role: Role) -> Dict[Capability, bool]:
        """Return an isolated copy of one role's grants ({} when absent)."""
        with self._lock:
            return dict(self._table.get(role, {}))

    def check(self, role: Role, capability: Capability) -> bool:
        """Stored grant, or False when the role or capability is missing."""
        grants = self._table.get(role)
        if grants is None:
            return False
        return grants.get(capability, False)

    def set(self, role: Role, capability: Capability, value: bool) -> bool:
        """Store a grant. Returns False (no-op) when the role has no row.

        The matrix does not check who is calling; the edit surface must
        verify super-admin standing first.
        """
        with self._lock:
            grants = self._table.get(role)
            if grants is None:
                return False
            grants[capability] = bool(value)
        logger.info("Permission %s.%s set to %s", role.value, capability.value, bool(value))
        return True

    def toggle(self, role: Role, capability: Capability) -> Optional[bool]:
        """Flip one grant atomically and return its new value."""
        with self._lock:
            grants = self._table.get(role)
            if grants is None:
                return None
            grants[capability] = not grants.get(capability, False)
            value = grants[capability]
        logger.info("Permission %s.%s toggled to %s", role.value, capability.value, value)
        return value

    def rows(self) -> List[RolePermissionRow]:
        """Deep copy of the full matrix, highest rank first."""
        with self._lock:
            snapshot = copy.deepcopy(self._table)
        return [
            RolePermissionRow(role=role, permissions=snapshot[role])
            for role in sorted(snapshot, key=lambda r: r.rank, reverse=True)
        ]
