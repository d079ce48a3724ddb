"""Pydantic models for the SEO auto-fix engine.

Defines tracked issues and their lifecycle, ephemeral fixes, content items
fetched from the content platform, and the result structures returned to
callers.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IssueType(str, Enum):
    """Issue types the engine knows how to remediate."""
    MISSING_ALT_TEXT = "missing_alt_text"
    MISSING_META_DESCRIPTION = "missing_meta_description"
    META_DESCRIPTION_TOO_LONG = "meta_description_too_long"
    POOR_TITLE_TAG = "poor_title_tag"
    HEADING_STRUCTURE = "heading_structure"
    MISSING_H1 = "missing_h1"
    MISSING_H1_TAG = "missing_h1_tag"
    IMPROPER_HEADING_HIERARCHY = "improper_heading_hierarchy"
    LOW_CONTENT_QUALITY = "low_content_quality"
    CONTENT_QUALITY = "content_quality"
    POOR_CONTENT_STRUCTURE = "poor_content_structure"
    KEYWORD_OPTIMIZATION = "keyword_optimization"
    POOR_KEYWORD_DISTRIBUTION = "poor_keyword_distribution"


# Aliases collapse onto the type the detection pass records for the issue.
CANONICAL_ISSUE_TYPES: dict[str, str] = {
    "meta_description_too_long": "missing_meta_description",
    "missing_h1": "heading_structure",
    "missing_h1_tag": "heading_structure",
    "improper_heading_hierarchy": "heading_structure",
    "content_quality": "low_content_quality",
    "content_structure": "poor_content_structure",
    "poor_keyword_distribution": "keyword_optimization",
}


def canonical_issue_type(issue_type: str) -> str:
    return CANONICAL_ISSUE_TYPES.get(issue_type, issue_type)


class Severity(str, Enum):
    """Severity assigned by the detection pass."""
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class Impact(str, Enum):
    """Expected SEO impact of a fix."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


IMPACT_PRIORITY: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


def impact_for_severity(severity: str) -> Impact:
    if severity == Severity.CRITICAL:
        return Impact.HIGH
    if severity == Severity.WARNING:
        return Impact.MEDIUM
    return Impact.LOW


class IssueStatus(str, Enum):
    """Lifecycle of a tracked issue."""
    DETECTED = "detected"
    FIXING = "fixing"
    FIXED = "fixed"
    REAPPEARED = "reappeared"
    RESOLVED = "resolved"


ISSUE_TRANSITIONS: dict[IssueStatus, frozenset[IssueStatus]] = {
    IssueStatus.DETECTED: frozenset({IssueStatus.FIXING, IssueStatus.RESOLVED}),
    IssueStatus.REAPPEARED: frozenset({IssueStatus.FIXING, IssueStatus.RESOLVED}),
    IssueStatus.FIXING: frozenset({IssueStatus.FIXED, IssueStatus.DETECTED, IssueStatus.RESOLVED}),
    IssueStatus.FIXED: frozenset({IssueStatus.REAPPEARED, IssueStatus.RESOLVED}),
    IssueStatus.RESOLVED: frozenset(),
}


class InvalidStatusTransition(Exception):
    """A tracked issue was asked to move along an edge the lifecycle forbids."""

    def __init__(self, issue_id: str, current: str, requested: str):
        self.issue_id = issue_id
        self.current = current
        self.requested = requested
        super().__init__(f"Issue {issue_id}: cannot move from '{current}' to '{requested}'")


def can_transition(current: str, requested: str) -> bool:
    return IssueStatus(requested) in ISSUE_TRANSITIONS[IssueStatus(current)]


class StatusChange(BaseModel):
    """One entry of a tracked issue's status history."""
    previous_status: str
    new_status: str
    timestamp: datetime
    fix_method: Optional[str] = None
    fix_session_id: Optional[str] = None


class TrackedIssue(BaseModel):
    """A persisted SEO issue with a lifecycle status."""
    id: str
    website_id: str
    user_id: str
    issue_type: str
    issue_title: str
    issue_description: Optional[str] = None
    severity: Severity = Severity.WARNING
    status: IssueStatus = IssueStatus.DETECTED
    current_value: Optional[str] = None
    recommended_value: Optional[str] = None
    element_path: Optional[str] = None
    auto_fix_available: bool = True
    fix_method: Optional[str] = None
    fix_session_id: Optional[str] = None
    last_seen_at: datetime = Field(default_factory=utcnow)
    fixed_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    status_history: list[StatusChange] = Field(default_factory=list)

    class Config:
        use_enum_values = True


class Fix(BaseModel):
    """A single remediation attempt, created and discarded within one run."""
    type: str
    description: str
    element: Optional[str] = None
    before: Optional[str] = None
    after: Optional[str] = None
    success: bool = False
    impact: Impact = Impact.MEDIUM
    error: Optional[str] = None
    content_id: Optional[int] = None
    content_type: Optional[str] = None
    element_path: Optional[str] = None
    tracked_issue_id: Optional[str] = None

    class Config:
        use_enum_values = True

    @classmethod
    def from_tracked_issue(cls, issue: TrackedIssue) -> "Fix":
        return cls(
            type=issue.issue_type,
            description=issue.issue_description or issue.issue_title,
            element=issue.element_path or issue.issue_type,
            before=issue.current_value or "Current state",
            after=issue.recommended_value or "Improved state",
            impact=impact_for_severity(issue.severity),
            element_path=issue.element_path,
            tracked_issue_id=issue.id,
        )


class WebsiteCredentials(BaseModel):
    """Basic-auth credentials for the content platform."""
    base_url: str
    username: str
    secret: str = Field(..., repr=False)


class Website(BaseModel):
    """A managed website owned by one user."""
    id: str
    user_id: str
    name: str
    url: str
    username: Optional[str] = None
    secret: Optional[str] = Field(None, repr=False)
    seo_score: Optional[float] = None
    last_analyzed: Optional[datetime] = None

    def credentials(self) -> WebsiteCredentials:
        if not self.secret:
            raise ValueError("Content platform credentials not configured")
        return WebsiteCredentials(
            base_url=self.url,
            username=self.username or "admin",
            secret=self.secret,
        )


def _rendered(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("rendered") or value.get("raw") or ""
    return value or ""


class ContentItem(BaseModel):
    """A post or page fetched from the content platform."""
    id: int
    content_type: str = Field(..., description="post or page")
    title: str = ""
    content: str = ""
    excerpt: str = ""
    status: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict, content_type: str) -> "ContentItem":
        return cls(
            id=data["id"],
            content_type=content_type,
            title=_rendered(data.get("title")),
            content=_rendered(data.get("content")),
            excerpt=_rendered(data.get("excerpt")),
            status=data.get("status"),
        )


class SeoReport(BaseModel):
    """A persisted site-wide SEO score."""
    id: int
    website_id: str
    score: float
    created_at: datetime


class ActivityLogEntry(BaseModel):
    """Append-only audit record."""
    id: int
    user_id: str
    website_id: Optional[str] = None
    type: str
    description: str
    metadata: dict = Field(default_factory=dict)
    created_at: datetime


class FixOptions(BaseModel):
    """Caller options for a remediation run."""
    fix_types: Optional[list[str]] = None
    max_changes: Optional[int] = Field(None, ge=1, description="Defaults to all fixable issues")
    skip_backup: bool = False
    enable_reanalysis: bool = True
    reanalysis_delay: Optional[float] = Field(None, ge=0, description="Seconds; defaults to config")
    force_reanalysis: bool = False


class FixBreakdown(BaseModel):
    alt_text_fixed: int = 0
    meta_descriptions_updated: int = 0
    title_tags_improved: int = 0
    heading_structure_fixed: int = 0
    content_quality_improved: int = 0
    keywords_optimized: int = 0


class FixStats(BaseModel):
    total_issues_found: int = 0
    fixes_attempted: int = 0
    fixes_successful: int = 0
    fixes_failed: int = 0
    estimated_impact: str = "none"
    detailed_breakdown: FixBreakdown = Field(default_factory=FixBreakdown)


class ReanalysisResult(BaseModel):
    """Outcome of re-scoring a website after remediation."""
    enabled: bool = True
    initial_score: float = 0
    final_score: float = 0
    score_improvement: float = 0
    analysis_time: float = 0
    success: bool = False
    error: Optional[str] = None
    simulated: bool = False


class RemediationResult(BaseModel):
    """The only structure a remediation run hands back to its caller."""
    success: bool
    dry_run: bool
    fixes_applied: list[Fix] = Field(default_factory=list)
    stats: FixStats = Field(default_factory=FixStats)
    errors: Optional[list[str]] = None
    message: str
    detailed_log: list[str] = Field(default_factory=list)
    reanalysis: Optional[ReanalysisResult] = None
    fix_session_id: str


class AvailableFixes(BaseModel):
    available_fixes: list[str] = Field(default_factory=list)
    total_fixable_issues: int = 0
    estimated_time: str = "0 minutes"
    breakdown: dict[str, int] = Field(default_factory=dict)
