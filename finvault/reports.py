"""
Tabular views of the audit log, permission matrix and directory.
"""

from typing import Iterable, List

import pandas as pd

from finvault.models import AuditLogEntry, Capability, Identity, RolePermissionRow

AUDIT_COLUMNS = [
    "timestamp", "severity", "action", "actor_id", "acting_as_id", "target_id", "details", "id",
]


def audit_log_frame(entries: Iterable[AuditLogEntry]) -> pd.DataFrame:
    """One row per entry, in the order given (newest first from AuditLog.list)."""
    records = [
        {
            "timestamp": e.timestamp_iso,
            "severity": e.severity.value,
            "action": e.action,
            "actor_id": e.actor_id,
            "acting_as_id": e.acting_as_id,
            "target_id": e.target_id,
            "details": e.details,
            "id": e.id,
        }
        for e in entries
    ]
    return pd.DataFrame(records, columns=AUDIT_COLUMNS)


def permission_matrix_frame(rows: List[RolePermissionRow]) -> pd.DataFrame:
    """Roles as the index, capabilities as boolean columns."""
    df = pd.DataFrame(
        [[row.permissions.get(c, False) for c in Capability] for row in rows],
        index=[row.role.value for row in rows],
        columns=[c.value for c in Capability],
    )
    df.index.name = "role"
    return df


def identity_frame(identities: Iterable[Identity]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"id": i.id, "name": i.name, "email": i.email,
             "role": i.role.value, "assigned_to": i.assigned_to}
            for i in identities
        ],
        columns=["id", "name", "email", "role", "assigned_to"],
    )


def export_audit_csv(entries: Iterable[AuditLogEntry], path: str) -> int:
    """Write entries to *path* as CSV and return the row count."""
    df = audit_log_frame(entries)
    df.to_csv(path, index=False)
    return len(df)
