"""Storage interface used by the remediation engine.

Covers tracked SEO issues, websites, SEO reports, the activity log and
backups. Implementations must reject status changes that the issue
lifecycle forbids by raising ``InvalidStatusTransition``.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from ..models import ActivityLogEntry, SeoReport, TrackedIssue, Website


class RemediationStore(ABC):
    """Persistence needed by the orchestrator, reconciler and reanalyzer."""

    @abstractmethod
    def get_user_website(self, website_id: str, user_id: str) -> Optional[Website]:
        """Return the website if it exists and belongs to ``user_id``."""
        pass

    @abstractmethod
    def get_tracked_seo_issues(
        self,
        website_id: str,
        user_id: str,
        statuses: Optional[list[str]] = None,
        auto_fixable_only: bool = False,
        exclude_recently_fixed: bool = False,
        fixed_within_days: int = 7,
    ) -> list[TrackedIssue]:
        """Query tracked issues for one website.

        Args:
            website_id: Website the issues belong to
            user_id: Owner of the website
            statuses: Only return issues in these statuses
            auto_fixable_only: Only return issues flagged as auto-fixable
            exclude_recently_fixed: Drop issues fixed within ``fixed_within_days``
            fixed_within_days: Cool-down window in days
        """
        pass

    @abstractmethod
    def update_seo_issue_status(
        self,
        issue_id: str,
        status: str,
        fix_method: Optional[str] = None,
        fix_session_id: Optional[str] = None,
        resolution_notes: Optional[str] = None,
    ) -> TrackedIssue:
        """Move one issue to ``status``.

        Raises:
            KeyError: if the issue does not exist
            InvalidStatusTransition: if the lifecycle forbids the change
        """
        pass

    @abstractmethod
    def bulk_update_seo_issue_statuses(
        self,
        issue_ids: list[str],
        status: str,
        fix_session_id: Optional[str] = None,
        fix_method: Optional[str] = None,
    ) -> int:
        """Move several issues to ``status``; returns how many were updated."""
        pass

    @abstractmethod
    def update_website(
        self,
        website_id: str,
        seo_score: Optional[float] = None,
        last_analyzed: Optional[datetime] = None,
    ) -> None:
        pass

    @abstractmethod
    def get_seo_reports_by_website(self, website_id: str) -> list[SeoReport]:
        """Reports for a website, newest first."""
        pass

    @abstractmethod
    def create_seo_report(self, website_id: str, score: float) -> SeoReport:
        pass

    @abstractmethod
    def create_activity_log(
        self,
        user_id: str,
        website_id: Optional[str],
        type: str,
        description: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> ActivityLogEntry:
        pass

    @abstractmethod
    def create_backup(
        self,
        user_id: str,
        website_id: str,
        backup_type: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Record a backup and return its id."""
        pass
