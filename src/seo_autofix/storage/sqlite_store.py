"""SQLite storage for websites, tracked SEO issues and the audit trail.

Provides persistent storage for:
- Websites and their content platform credentials
- Tracked SEO issues with status history
- SEO reports (score snapshots)
- Activity log entries and backup records
"""

import json
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Optional, Union

from ..config import get_settings
from ..models import (
    ActivityLogEntry,
    InvalidStatusTransition,
    IssueStatus,
    SeoReport,
    Severity,
    StatusChange,
    TrackedIssue,
    Website,
    can_transition,
    utcnow,
)
from .base import RemediationStore


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SQLiteStore(RemediationStore):
    """SQLite-based implementation of the remediation store."""

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        """Initialize storage.

        Args:
            db_path: Path to SQLite database file. Defaults to config value.
        """
        self.db_path = Path(db_path or get_settings().database_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_conn()
        try:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS websites (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    url TEXT NOT NULL,
                    username TEXT,
                    secret TEXT,
                    seo_score REAL,
                    last_analyzed TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS seo_issue_tracking (
                    id TEXT PRIMARY KEY,
                    website_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    issue_type TEXT NOT NULL,
                    issue_title TEXT NOT NULL,
                    issue_description TEXT,
                    severity TEXT NOT NULL DEFAULT 'warning',
                    status TEXT NOT NULL DEFAULT 'detected',
                    current_value TEXT,
                    recommended_value TEXT,
                    element_path TEXT,
                    auto_fix_available INTEGER DEFAULT 1,
                    fix_method TEXT,
                    fix_session_id TEXT,
                    last_seen_at TEXT NOT NULL,
                    fixed_at TEXT,
                    resolution_notes TEXT,
                    status_history_json TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (website_id) REFERENCES websites(id)
                );

                CREATE TABLE IF NOT EXISTS seo_reports (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    website_id TEXT NOT NULL,
                    score REAL NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (website_id) REFERENCES websites(id)
                );

                CREATE TABLE IF NOT EXISTS activity_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    website_id TEXT,
                    type TEXT NOT NULL,
                    description TEXT NOT NULL,
                    metadata_json TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS backups (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    website_id TEXT NOT NULL,
                    backup_type TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'completed',
                    metadata_json TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_issues_website_id ON seo_issue_tracking(website_id);
                CREATE INDEX IF NOT EXISTS idx_issues_status ON seo_issue_tracking(status);
                CREATE INDEX IF NOT EXISTS idx_reports_website_id ON seo_reports(website_id);
                CREATE INDEX IF NOT EXISTS idx_activity_website_id ON activity_logs(website_id);
            """)
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Websites
    # ------------------------------------------------------------------

    def create_website(self, website: Website) -> Website:
        """Insert a website record."""
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO websites (id, user_id, name, url, username, secret, seo_score, last_analyzed)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    website.id,
                    website.user_id,
                    website.name,
                    website.url,
                    website.username,
                    website.secret,
                    website.seo_score,
                    website.last_analyzed.isoformat() if website.last_analyzed else None,
                ),
            )
            conn.commit()
            return website
        finally:
            conn.close()

    def get_website(self, website_id: str) -> Optional[Website]:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM websites WHERE id = ?", (website_id,)).fetchone()
            return self._row_to_website(row) if row else None
        finally:
            conn.close()

    def get_user_website(self, website_id: str, user_id: str) -> Optional[Website]:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM websites WHERE id = ? AND user_id = ?",
                (website_id, user_id),
            ).fetchone()
            return self._row_to_website(row) if row else None
        finally:
            conn.close()

    def update_website(
        self,
        website_id: str,
        seo_score: Optional[float] = None,
        last_analyzed: Optional[datetime] = None,
    ) -> None:
        """Update the score fields of a website."""
        conn = self._get_conn()
        try:
            updates = []
            params: list[Any] = []

            if seo_score is not None:
                updates.append("seo_score = ?")
                params.append(seo_score)

            if last_analyzed is not None:
                updates.append("last_analyzed = ?")
                params.append(last_analyzed.isoformat())

            if not updates:
                return

            params.append(website_id)
            conn.execute(
                f"UPDATE websites SET {', '.join(updates)} WHERE id = ?",
                params,
            )
            conn.commit()
        finally:
            conn.close()

    def _row_to_website(self, row: sqlite3.Row) -> Website:
        return Website(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            url=row["url"],
            username=row["username"],
            secret=row["secret"],
            seo_score=row["seo_score"],
            last_analyzed=_parse_dt(row["last_analyzed"]),
        )

    # ------------------------------------------------------------------
    # Tracked issues
    # ------------------------------------------------------------------

    def create_tracked_issue(self, issue: TrackedIssue) -> TrackedIssue:
        """Insert a tracked issue as produced by the detection pass."""
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO seo_issue_tracking
                   (id, website_id, user_id, issue_type, issue_title, issue_description,
                    severity, status, current_value, recommended_value, element_path,
                    auto_fix_available, fix_method, fix_session_id, last_seen_at, fixed_at,
                    resolution_notes, status_history_json, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    issue.id,
                    issue.website_id,
                    issue.user_id,
                    issue.issue_type,
                    issue.issue_title,
                    issue.issue_description,
                    Severity(issue.severity).value,
                    IssueStatus(issue.status).value,
                    issue.current_value,
                    issue.recommended_value,
                    issue.element_path,
                    int(issue.auto_fix_available),
                    issue.fix_method,
                    issue.fix_session_id,
                    issue.last_seen_at.isoformat(),
                    issue.fixed_at.isoformat() if issue.fixed_at else None,
                    issue.resolution_notes,
                    json.dumps([h.model_dump(mode="json") for h in issue.status_history]),
                    utcnow().isoformat(),
                ),
            )
            conn.commit()
            return issue
        finally:
            conn.close()

    def get_tracked_issue(self, issue_id: str) -> Optional[TrackedIssue]:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM seo_issue_tracking WHERE id = ?", (issue_id,)
            ).fetchone()
            return self._row_to_issue(row) if row else None
        finally:
            conn.close()

    def get_tracked_seo_issues(
        self,
        website_id: str,
        user_id: str,
        statuses: Optional[list[str]] = None,
        auto_fixable_only: bool = False,
        exclude_recently_fixed: bool = False,
        fixed_within_days: int = 7,
    ) -> list[TrackedIssue]:
        conn = self._get_conn()
        try:
            clauses = ["website_id = ?", "user_id = ?"]
            params: list[Any] = [website_id, user_id]

            if statuses:
                clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
                params.extend(statuses)

            if auto_fixable_only:
                clauses.append("auto_fix_available = 1")

            if exclude_recently_fixed:
                cutoff = utcnow() - timedelta(days=fixed_within_days)
                clauses.append("(fixed_at IS NULL OR fixed_at < ?)")
                params.append(cutoff.isoformat())

            rows = conn.execute(
                f"SELECT * FROM seo_issue_tracking WHERE {' AND '.join(clauses)} "
                "ORDER BY created_at, rowid",
                params,
            ).fetchall()
            return [self._row_to_issue(row) for row in rows]
        finally:
            conn.close()

    def _apply_status(
        self,
        conn: sqlite3.Connection,
        row: sqlite3.Row,
        status: str,
        fix_method: Optional[str],
        fix_session_id: Optional[str],
        resolution_notes: Optional[str],
    ) -> None:
        current = row["status"]
        if not can_transition(current, status):
            raise InvalidStatusTransition(row["id"], current, status)

        now = utcnow()
        history = json.loads(row["status_history_json"] or "[]")
        history.append(StatusChange(
            previous_status=current,
            new_status=status,
            timestamp=now,
            fix_method=fix_method,
            fix_session_id=fix_session_id,
        ).model_dump(mode="json"))

        updates = ["status = ?", "status_history_json = ?"]
        params: list[Any] = [status, json.dumps(history)]

        if status == IssueStatus.FIXING:
            updates.append("fix_session_id = ?")
            params.append(fix_session_id)
        elif status == IssueStatus.DETECTED:
            updates.append("fix_session_id = NULL")
        elif status == IssueStatus.FIXED:
            updates.append("fixed_at = ?")
            params.append(now.isoformat())

        if fix_method is not None:
            updates.append("fix_method = ?")
            params.append(fix_method)

        if resolution_notes is not None:
            updates.append("resolution_notes = ?")
            params.append(resolution_notes)

        params.append(row["id"])
        conn.execute(
            f"UPDATE seo_issue_tracking SET {', '.join(updates)} WHERE id = ?",
            params,
        )

    def update_seo_issue_status(
        self,
        issue_id: str,
        status: str,
        fix_method: Optional[str] = None,
        fix_session_id: Optional[str] = None,
        resolution_notes: Optional[str] = None,
    ) -> TrackedIssue:
        status = IssueStatus(status).value
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM seo_issue_tracking WHERE id = ?", (issue_id,)
            ).fetchone()
            if not row:
                raise KeyError(f"Tracked issue {issue_id} not found")

            self._apply_status(conn, row, status, fix_method, fix_session_id, resolution_notes)
            conn.commit()

            updated = conn.execute(
                "SELECT * FROM seo_issue_tracking WHERE id = ?", (issue_id,)
            ).fetchone()
            return self._row_to_issue(updated)
        finally:
            conn.close()

    def bulk_update_seo_issue_statuses(
        self,
        issue_ids: list[str],
        status: str,
        fix_session_id: Optional[str] = None,
        fix_method: Optional[str] = None,
    ) -> int:
        """Move several issues at once. Nothing is written if any move is invalid."""
        if not issue_ids:
            return 0
        status = IssueStatus(status).value
        conn = self._get_conn()
        try:
            rows = conn.execute(
                f"SELECT * FROM seo_issue_tracking WHERE id IN ({', '.join('?' for _ in issue_ids)})",
                issue_ids,
            ).fetchall()
            for row in rows:
                self._apply_status(conn, row, status, fix_method, fix_session_id, None)
            conn.commit()
            return len(rows)
        except InvalidStatusTransition:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _row_to_issue(self, row: sqlite3.Row) -> TrackedIssue:
        return TrackedIssue(
            id=row["id"],
            website_id=row["website_id"],
            user_id=row["user_id"],
            issue_type=row["issue_type"],
            issue_title=row["issue_title"],
            issue_description=row["issue_description"],
            severity=row["severity"],
            status=row["status"],
            current_value=row["current_value"],
            recommended_value=row["recommended_value"],
            element_path=row["element_path"],
            auto_fix_available=bool(row["auto_fix_available"]),
            fix_method=row["fix_method"],
            fix_session_id=row["fix_session_id"],
            last_seen_at=datetime.fromisoformat(row["last_seen_at"]),
            fixed_at=_parse_dt(row["fixed_at"]),
            resolution_notes=row["resolution_notes"],
            status_history=[StatusChange(**h) for h in json.loads(row["status_history_json"] or "[]")],
        )

    # ------------------------------------------------------------------
    # Reports, activity log, backups
    # ------------------------------------------------------------------

    def get_seo_reports_by_website(self, website_id: str) -> list[SeoReport]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM seo_reports WHERE website_id = ? ORDER BY created_at DESC, id DESC",
                (website_id,),
            ).fetchall()
            return [
                SeoReport(
                    id=row["id"],
                    website_id=row["website_id"],
                    score=row["score"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in rows
            ]
        finally:
            conn.close()

    def create_seo_report(self, website_id: str, score: float) -> SeoReport:
        conn = self._get_conn()
        now = utcnow()
        try:
            cursor = conn.execute(
                "INSERT INTO seo_reports (website_id, score, created_at) VALUES (?, ?, ?)",
                (website_id, score, now.isoformat()),
            )
            conn.commit()
            return SeoReport(id=cursor.lastrowid, website_id=website_id, score=score, created_at=now)
        finally:
            conn.close()

    def create_activity_log(
        self,
        user_id: str,
        website_id: Optional[str],
        type: str,
        description: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ActivityLogEntry:
        conn = self._get_conn()
        now = utcnow()
        try:
            cursor = conn.execute(
                """INSERT INTO activity_logs (user_id, website_id, type, description, metadata_json, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (user_id, website_id, type, description, json.dumps(metadata or {}, default=str), now.isoformat()),
            )
            conn.commit()
            return ActivityLogEntry(
                id=cursor.lastrowid,
                user_id=user_id,
                website_id=website_id,
                type=type,
                description=description,
                metadata=metadata or {},
                created_at=now,
            )
        finally:
            conn.close()

    def get_activity_logs(self, website_id: str) -> list[ActivityLogEntry]:
        """Activity log entries for a website, oldest first."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM activity_logs WHERE website_id = ? ORDER BY id",
                (website_id,),
            ).fetchall()
            return [
                ActivityLogEntry(
                    id=row["id"],
                    user_id=row["user_id"],
                    website_id=row["website_id"],
                    type=row["type"],
                    description=row["description"],
                    metadata=json.loads(row["metadata_json"] or "{}"),
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in rows
            ]
        finally:
            conn.close()

    def create_backup(
        self,
        user_id: str,
        website_id: str,
        backup_type: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """INSERT INTO backups (user_id, website_id, backup_type, metadata_json, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (user_id, website_id, backup_type, json.dumps(metadata or {}, default=str), utcnow().isoformat()),
            )
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    def count_backups(self, website_id: str) -> int:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT COUNT(*) FROM backups WHERE website_id = ?", (website_id,)
            ).fetchone()
            return row[0]
        finally:
            conn.close()
