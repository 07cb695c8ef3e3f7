"""
Sessions and the impersonation protocol.

A session tracks two identities: the acting user (the real, logged-in
actor, fixed for the session's lifetime) and the current user (the
identity presented to the UI, which differs while impersonating).
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

import jwt

from finvault.audit import AuditLog
from finvault.config import SECRET_KEY, TOKEN_ALGORITHM, TOKEN_EXPIRY_HOURS
from finvault.directory import IdentityDirectory
from finvault.errors import NotAuthenticatedError
from finvault.models import AuditAction, Identity, SessionState, Severity
from finvault.rbac import AuthorizationEngine

logger = logging.getLogger(__name__)


class Session:
    """One user's session: unauthenticated, direct or impersonating."""

    def __init__(self, directory: IdentityDirectory, engine: AuthorizationEngine,
                 audit: AuditLog):
        self.directory = directory
        self.engine = engine
        self.audit = audit
        self._current: Optional[Identity] = None
        self._acting: Optional[Identity] = None

    # ── State ────────────────────────────────────────────────────────

    @property
    def current_user(self) -> Optional[Identity]:
        return self._current

    @property
    def acting_user(self) -> Optional[Identity]:
        return self._acting

    @property
    def is_authenticated(self) -> bool:
        return self._acting is not None

    @property
    def is_impersonating(self) -> bool:
        return self._acting is not None and self._current.id != self._acting.id

    def state(self) -> SessionState:
        return SessionState(
            current_user=self._current,
            acting_user=self._acting,
            is_impersonating=self.is_impersonating,
        )

    def require_actor(self) -> Identity:
        """Return the real actor or raise if nobody is logged in."""
        if self._acting is None:
            raise NotAuthenticatedError("No active session; log in first.")
        return self._acting

    def audit_context(self) -> Tuple[str, Optional[str]]:
        """(actor_id, acting_as_id) to attribute audit entries with."""
        actor = self.require_actor()
        acting_as = self._current.id if self.is_impersonating else None
        return actor.id, acting_as

    # ── Transitions ──────────────────────────────────────────────────

    def login(self, identity_id: str) -> Optional[Identity]:
        """Start a direct session. Unknown ids leave the session untouched."""
        user = self.directory.find(identity_id)
        if user is None:
            logger.info("Login rejected for unknown identity %s", identity_id)
            return None

        self.audit.append(
            actor_id=user.id,
            action=AuditAction.LOGIN,
            details=f"{user.name} logged into the system",
            severity=Severity.INFO,
        )
        self._acting = user
        self._current = user
        return user

    def start_impersonation(self, target: Identity) -> bool:
        """Act as *target*. Eligibility is always judged on the real actor."""
        actor = self.require_actor()

        if not self.engine.can_impersonate(actor, target):
            self.audit.append(
                actor_id=actor.id,
                target_id=target.id,
                action=AuditAction.IMPERSONATION_DENIED,
                details=f"Unauthorized impersonation attempt by {actor.name} on {target.name}",
                severity=Severity.CRITICAL,
            )
            return False

        self.audit.append(
            actor_id=actor.id,
            acting_as_id=target.id,
            action=AuditAction.IMPERSONATION_START,
            details=f"{actor.name} started impersonating {target.name}",
            severity=Severity.WARNING,
        )
        self._current = target
        return True

    def stop_impersonation(self) -> bool:
        """Return to the real actor. False (and no entry) when not impersonating."""
        if not self.is_impersonating:
            return False

        actor, impersonated = self._acting, self._current
        self.audit.append(
            actor_id=actor.id,
            acting_as_id=impersonated.id,
            action=AuditAction.IMPERSONATION_STOP,
            details=f"{actor.name} stopped impersonating {impersonated.name}",
            severity=Severity.INFO,
        )
        self._current = actor
        return True

    def logout(self) -> bool:
        """End the session, recording it like every other boundary transition."""
        if self._acting is None:
            return False

        actor_id, acting_as_id = self.audit_context()
        self.audit.append(
            actor_id=actor_id,
            acting_as_id=acting_as_id,
            action=AuditAction.LOGOUT,
            details=f"{self._acting.name} logged out",
            severity=Severity.INFO,
        )
        self._acting = None
        self._current = None
        return True


# ── Session registry ─────────────────────────────────────────────────

class SessionRegistry:
    """Token-keyed store of live sessions, one per connection.

    Tokens are signed session handles, not credentials.
    """

    def __init__(self, directory: IdentityDirectory, engine: AuthorizationEngine,
                 audit: AuditLog, secret_key: str = SECRET_KEY,
                 expiry_hours: int = TOKEN_EXPIRY_HOURS):
        self.directory = directory
        self.engine = engine
        self.audit = audit
        self.secret_key = secret_key
        self.expiry_hours = expiry_hours
        # {token: {"session": Session, "created_at": datetime, "last_activity": datetime}}
        self._sessions: Dict[str, Dict] = {}
        self._lock = threading.Lock()

    def generate_token(self, identity: Identity) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": identity.id,
            "role": identity.role.value,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + timedelta(hours=self.expiry_hours),
        }
        return jwt.encode(payload, self.secret_key, algorithm=TOKEN_ALGORITHM)

    def verify_token(self, token: str) -> Optional[Dict]:
        """Decoded payload, or None when the token is expired or invalid."""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[TOKEN_ALGORITHM])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    def open(self, identity_id: str) -> Optional[str]:
        """Log *identity_id* into a new session and return its token."""
        session = Session(self.directory, self.engine, self.audit)
        user = session.login(identity_id)
        if user is None:
            return None

        token = self.generate_token(user)
        now = datetime.now(timezone.utc)
        with self._lock:
            self._sessions[token] = {
                "session": session,
                "created_at": now,
                "last_activity": now,
            }
        return token

    def get(self, token: str) -> Optional[Session]:
        payload = self.verify_token(token)
        if not payload:
            return None
        with self._lock:
            data = self._sessions.get(token)
            if data is None:
                return None
            data["last_activity"] = datetime.now(timezone.utc)
            return data["session"]

    def close(self, token: str) -> bool:
        with self._lock:
            data = self._sessions.pop(token, None)
        if data is None:
            return False
        data["session"].logout()
        return True

    def cleanup_expired(self, now: Optional[datetime] = None) -> int:
        """Drop sessions idle longer than the token lifetime."""
        now = now or datetime.now(timezone.utc)
        limit = timedelta(hours=self.expiry_hours)
        with self._lock:
            expired = [
                tok for tok, data in self._sessions.items()
                if now - data["last_activity"] > limit
            ]
            for tok in expired:
                del self._sessions[tok]
        if expired:
            logger.info("Removed %d expired sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
