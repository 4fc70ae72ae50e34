"""
Per-user activity log.

Records what the extension and tools did on the user's behalf: password
checks, speed tests, ad-block changes, page and download scans. Entries can
be exported per type as CSV and pruned by age.

The activity_logs table has RLS: every query sees only the current user's
rows, and rows go away with the user (ON DELETE CASCADE).
"""

import csv
import io
import logging
from enum import Enum
from datetime import datetime
from typing import Any
from uuid import UUID

from psycopg2.extras import Json
from pydantic import BaseModel

from clients.postgres_client import PostgresClient
from utils.user_context import get_current_user_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("timestamp", "type", "result", "threat_level", "source")


class ActivityType(Enum):
    PAGES = "pages"
    DOWNLOADS = "downloads"
    NETWORK = "network"
    PASSWORDS = "passwords"


class ActivityResult(Enum):
    SAFE = "safe"
    UNSAFE = "unsafe"
    CLEAN = "clean"
    INFECTED = "infected"
    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


class ThreatLevel(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class ActivityEntry(BaseModel):
    id: UUID
    user_id: UUID
    type: ActivityType
    result: ActivityResult
    threat_level: ThreatLevel
    source: str
    details: dict[str, Any] | None = None
    created_at: datetime


class ActivityLogger:
    """
    Append and read activity entries for the current user.

    Usage:
        activity = ActivityLogger(postgres)

        with user_context(user.id):
            activity.log(ActivityType.PASSWORDS, ActivityResult.WEAK,
                         source="password_strength", threat_level=ThreatLevel.MEDIUM)
            entries = activity.list_for_user(ActivityType.PASSWORDS)
    """

    MAX_ENTRIES = 100

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log(
        self,
        activity_type: ActivityType,
        result: ActivityResult,
        source: str,
        threat_level: ThreatLevel = ThreatLevel.NONE,
        details: dict[str, Any] | None = None,
    ) -> ActivityEntry:
        """
        Record an entry for the current user.

        Raises:
            RuntimeError: If no user context is set.
        """
        user_id = get_current_user_id()

        row = self.postgres.execute_single(
            """
            INSERT INTO activity_logs (user_id, type, result, threat_level, source, details, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id, user_id, type, result, threat_level, source, details, created_at
            """,
            (
                user_id,
                activity_type.value,
                result.value,
                threat_level.value,
                source,
                Json(details) if details is not None else None,
                now_utc(),
            ),
        )
        return ActivityEntry.model_validate(row)

    def list_for_user(self, activity_type: ActivityType | None = None) -> list[ActivityEntry]:
        """Latest entries for the current user, newest first."""
        # Fail fast outside a request; RLS would just return nothing
        get_current_user_id()

        if activity_type is None:
            rows = self.postgres.execute(
                """
                SELECT id, user_id, type, result, threat_level, source, details, created_at
                FROM activity_logs
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (self.MAX_ENTRIES,),
            )
        else:
            rows = self.postgres.execute(
                """
                SELECT id, user_id, type, result, threat_level, source, details, created_at
                FROM activity_logs
                WHERE type = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (activity_type.value, self.MAX_ENTRIES),
            )
        return [ActivityEntry.model_validate(row) for row in rows]

    def export_csv(self, activity_type: ActivityType) -> str:
        """Every entry of one type for the current user as CSV, newest first."""
        get_current_user_id()

        rows = self.postgres.execute(
            """
            SELECT created_at, type, result, threat_level, source
            FROM activity_logs
            WHERE type = %s
            ORDER BY created_at DESC
            """,
            (activity_type.value,),
        )

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_COLUMNS)
        for row in rows:
            writer.writerow([
                row["created_at"].isoformat(),
                row["type"],
                row["result"],
                row["threat_level"],
                row["source"],
            ])
        return buffer.getvalue()

    def delete_for_user(self, older_than: datetime | None = None) -> int:
        """
        Delete the current user's entries, all of them or those created
        before `older_than`. Returns how many were deleted.
        """
        get_current_user_id()

        if older_than is None:
            rows = self.postgres.execute("DELETE FROM activity_logs RETURNING id")
        else:
            rows = self.postgres.execute(
                "DELETE FROM activity_logs WHERE created_at < %s RETURNING id",
                (older_than,),
            )

        logger.info(f"Deleted {len(rows)} activity entries")
        return len(rows)
