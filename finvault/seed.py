"""
Seed data supplied at process start, and an optional database loader.
"""

import logging
import sys
from typing import List, Optional

from sqlalchemy import create_engine, text

from finvault.config import get_env
from finvault.models import Asset, AssetType, FamilyMember, Identity, Role

logger = logging.getLogger(__name__)


def default_identities() -> List[Identity]:
    """Demo staff and client accounts."""
    return [
        Identity("a", "Alice (Super)", "alice@wealthguard.com", Role.SUPER_ADMIN),
        Identity("b", "Bob (Admin)", "bob@wealthguard.com", Role.ADMIN),
        Identity("c", "Charlie (Admin)", "charlie@wealthguard.com", Role.ADMIN),
        Identity("d", "David (Assoc)", "david@wealthguard.com", Role.ASSOCIATE),
        Identity("e", "Eve (Assoc)", "eve@wealthguard.com", Role.ASSOCIATE),
        Identity("f_acc", "Frank Family", "frank@client.com", Role.CUSTOMER, assigned_to="d"),
        Identity("i_acc", "Isabella Family", "isabella@client.com", Role.CUSTOMER, assigned_to="e"),
    ]


def default_family_members() -> List[FamilyMember]:
    return [
        FamilyMember("i_1", "i_acc", "Isabella", "Primary"),
        FamilyMember("f_1", "f_acc", "Frank", "Primary"),
    ]


def default_assets() -> List[Asset]:
    return [
        Asset("1", "f_acc", "f_1", AssetType.STOCKS, 50000, {"symbol": "AAPL"}, "2024-03-20"),
    ]


# ── Database loader ──────────────────────────────────────────────────

def init_engine(db_uri: Optional[str] = None):
    """Create a SQLAlchemy engine and verify the connection.

    Without an explicit URI, SEED_DB_URI must be set in the environment.
    """
    db_uri = db_uri or get_env("SEED_DB_URI")
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    logger.info("Connected to seed database")
    return engine


def load_identities(engine) -> List[Identity]:
    """Read seed identities from the portal_users table."""
    sql = text("""
        SELECT id, name, email, role, assigned_to
        FROM portal_users
    """)
    with engine.connect() as conn:
        rows = conn.execute(sql).mappings().all()

    identities = []
    for row in rows:
        token = str(row["role"]).strip().upper()
        try:
            role = Role(token)
        except ValueError:
            raise ValueError(f"Unsupported role '{row['role']}' in portal_users.") from None
        identities.append(Identity(
            id=str(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            role=role,
            assigned_to=str(row["assigned_to"]) if row["assigned_to"] is not None else None,
        ))
    logger.info("Loaded %d identities from portal_users", len(identities))
    return identities
