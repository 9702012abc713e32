"""
PRACTICE CONSOLE - Audit & Directory Export
===========================================
Tabular views of audit entries and users for CSV download and reporting.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd

from ..auth.models import AuditLogEntry, User

logger = logging.getLogger(__name__)


AUDIT_COLUMNS = [
    'id', 'timestamp', 'user_id', 'user_name', 'user_type', 'action', 'severity',
    'module', 'resource', 'resource_id', 'resource_name', 'description',
    'success', 'error_message', 'ip_address', 'user_agent', 'session_id', 'changes',
]

USER_COLUMNS = [
    'id', 'username', 'email', 'full_name', 'type', 'status', 'roles',
    'department', 'title', 'mfa_enabled', 'login_attempts', 'locked_until',
    'last_login', 'created_at', 'updated_at',
]


def audit_logs_to_frame(logs: Iterable[AuditLogEntry]) -> pd.DataFrame:
    """One row per entry, in the order given. `changes` is flattened to text."""
    rows = []
    for entry in logs:
        row = entry.to_dict()
        row['timestamp'] = entry.timestamp
        row['changes'] = "; ".join(
            f"{c.field_label or c.field}: {c.old_value} -> {c.new_value}" for c in entry.changes
        )
        rows.append(row)

    df = pd.DataFrame(rows, columns=AUDIT_COLUMNS)
    if not df.empty:
        df['timestamp'] = pd.to_datetime(df['timestamp'], utc=True)
    return df


def users_to_frame(users: Iterable[User]) -> pd.DataFrame:
    rows = []
    for user in users:
        row = user.to_dict()
        row['roles'] = ", ".join(user.roles)
        rows.append(row)
    return pd.DataFrame(rows, columns=USER_COLUMNS)


def _write_csv(df: pd.DataFrame, path: Optional[Union[str, Path]]) -> str:
    if path is None:
        return df.to_csv(index=False)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return str(path)


def export_audit_logs_csv(logs: Iterable[AuditLogEntry],
                          path: Optional[Union[str, Path]] = None) -> str:
    """
    Export audit entries as CSV.

    Returns the CSV text when no path is given, otherwise the written path.
    """
    df = audit_logs_to_frame(logs)
    result = _write_csv(df, path)
    logger.info(f"Exported {len(df)} audit entries" + (f" to {path}" if path else ""))
    return result


def export_users_csv(users: Iterable[User], path: Optional[Union[str, Path]] = None) -> str:
    df = users_to_frame(users)
    result = _write_csv(df, path)
    logger.info(f"Exported {len(df)} users" + (f" to {path}" if path else ""))
    return result


def daily_activity(logs: Iterable[AuditLogEntry]) -> pd.DataFrame:
    """Event counts per UTC day and severity, oldest day first."""
    df = audit_logs_to_frame(logs)
    if df.empty:
        return pd.DataFrame(columns=['date', 'severity', 'count'])
    df['date'] = df['timestamp'].dt.date
    return (
        df.groupby(['date', 'severity'])
        .size()
        .reset_index(name='count')
        .sort_values(['date', 'severity'], kind='stable')
        .reset_index(drop=True)
    )
