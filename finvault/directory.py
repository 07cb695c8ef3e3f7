"""
Identity directory – CRUD over portal users and associate assignments.
"""

import dataclasses
import logging
import threading
from enum import Enum
from typing import Dict, Iterable, List, Optional

from finvault.errors import DuplicateIdentityError, IdentityInUseError, InvalidAssignmentError
from finvault.models import Identity, Role

logger = logging.getLogger(__name__)


class DeletePolicy(str, Enum):
    """What deleting an associate does to the customers assigned to it."""
    REJECT = "reject"
    NULLIFY = "nullify"


class IdentityDirectory:
    """Insertion-ordered identity store.

    Assignment references are checked on write: a customer's ``assigned_to``
    must name an existing associate, and only customers may carry one.
    """

    def __init__(self, identities: Iterable[Identity] = (),
                 on_delete: DeletePolicy = DeletePolicy.REJECT):
        self._by_id: Dict[str, Identity] = {}
        self._lock = threading.RLock()
        self.on_delete = DeletePolicy(on_delete)
        # Seed associates first so customer references resolve in any order.
        seed = list(identities)
        for identity in sorted(seed, key=lambda i: i.role is Role.CUSTOMER):
            self._check_unique(identity.id)
            self._check_assignment(identity)
            self._by_id[identity.id] = identity
        # Restore the caller's ordering.
        self._by_id = {i.id: self._by_id[i.id] for i in seed}

    # ── Validation ───────────────────────────────────────────────────

    def _check_unique(self, identity_id: str) -> None:
        if identity_id in self._by_id:
            raise DuplicateIdentityError(f"Identity '{identity_id}' already exists.")

    def _check_assignment(self, identity: Identity) -> None:
        if identity.assigned_to is None:
            return
        if identity.role is not Role.CUSTOMER:
            raise InvalidAssignmentError(
                f"Only customers can be assigned; '{identity.id}' is {identity.role.value}."
            )
        associate = self._by_id.get(identity.assigned_to)
        if associate is None or associate.role is not Role.ASSOCIATE:
            raise InvalidAssignmentError(
                f"Customer '{identity.id}' is assigned to '{identity.assigned_to}', "
                "which is not an existing associate."
            )

    # ── CRUD ─────────────────────────────────────────────────────────

    def add(self, identity: Identity) -> Identity:
        with self._lock:
            self._check_unique(identity.id)
            self._check_assignment(identity)
            self._by_id[identity.id] = identity
        logger.info("Added identity %s (%s)", identity.id, identity.role.value)
        return identity

    def update(self, identity_id: str, **fields) -> Optional[Identity]:
        """Apply partial field updates. Unknown ids are a no-op (None)."""
        if "id" in fields and fields["id"] != identity_id:
            raise ValueError("Identity ids are stable and cannot be changed.")
        with self._lock:
            current = self._by_id.get(identity_id)
            if current is None:
                return None
            updated = dataclasses.replace(current, **fields)
            if updated.role is not Role.CUSTOMER and "assigned_to" not in fields:
                updated = dataclasses.replace(updated, assigned_to=None)
            self._check_assignment(updated)
            if current.role is Role.ASSOCIATE and updated.role is not Role.ASSOCIATE:
                self._release_customers(identity_id)
            self._by_id[identity_id] = updated
        logger.info("Updated identity %s", identity_id)
        return updated

    def delete(self, identity_id: str) -> bool:
        """Remove an identity. Unknown ids are a no-op (False).

        Portfolio records owned by the identity are left in place.
        """
        with self._lock:
            if identity_id not in self._by_id:
                return False
            self._release_customers(identity_id)
            del self._by_id[identity_id]
        logger.info("Deleted identity %s", identity_id)
        return True

    def _release_customers(self, associate_id: str) -> None:
        customers = self.customers_of(associate_id)
        if not customers:
            return
        if self.on_delete is DeletePolicy.REJECT:
            raise IdentityInUseError(
                f"Associate '{associate_id}' still has {len(customers)} assigned "
                "customer(s); reassign them first."
            )
        for customer in customers:
            self._by_id[customer.id] = dataclasses.replace(customer, assigned_to=None)
            logger.warning("Cleared assignment of %s to %s", customer.id, associate_id)

    # ── Queries ──────────────────────────────────────────────────────

    def find(self, identity_id: str) -> Optional[Identity]:
        return self._by_id.get(identity_id)

    def list(self) -> List[Identity]:
        with self._lock:
            return list(self._by_id.values())

    def customers_of(self, associate_id: str) -> List[Identity]:
        return [
            i for i in self.list()
            if i.role is Role.CUSTOMER and i.assigned_to == associate_id
        ]

    def __contains__(self, identity_id: str) -> bool:
        return identity_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)
