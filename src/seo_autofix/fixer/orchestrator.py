"""Remediation orchestrator for tracked SEO issues.

Coordinates one remediation run:
1. Validates website ownership and resets issues stuck in ``fixing``
2. Selects and prioritizes fixable issues
3. Dry run: simulates outcomes and the score change
4. Apply: marks issues ``fixing``, mutates content through the fix
   strategies, reconciles issue statuses, sweeps leftovers, re-scores the
   site and writes one activity log entry

Every run returns a ``RemediationResult``; exceptions never escape.
"""

import asyncio
import logging
import time
import uuid
from typing import Callable, Optional

from ..analyzers.base import SiteScorer
from ..analyzers.scorer import ContentScorer
from ..config import Settings, get_settings
from ..models import (
    IMPACT_PRIORITY,
    AvailableFixes,
    Fix,
    FixBreakdown,
    FixOptions,
    FixStats,
    IssueStatus,
    ReanalysisResult,
    RemediationResult,
    TrackedIssue,
    Website,
    WebsiteCredentials,
    canonical_issue_type,
    impact_for_severity,
    utcnow,
)
from ..storage.base import RemediationStore
from .content_client import ContentClient
from .copywriter import Copywriter
from .reconciler import FIX_METHOD, cleanup_sweep, reconcile, reset_stuck_issues
from .run_log import RunLog
from .scoring import ScoreReanalyzer
from .strategies import StrategyContext, apply_fixes, summarize_outcomes
from .text_generation import TextGenerator

logger = logging.getLogger(__name__)

ACTIVITY_TYPE = "ai_fixes_applied"
BACKUP_TYPE = "pre_ai_fix"
FIXABLE_STATUSES = [IssueStatus.DETECTED.value, IssueStatus.REAPPEARED.value]
MINUTES_PER_FIX = 2
MIN_FIX_MINUTES = 3

_BREAKDOWN_FIELDS = {
    "missing_alt_text": "alt_text_fixed",
    "missing_meta_description": "meta_descriptions_updated",
    "poor_title_tag": "title_tags_improved",
    "heading_structure": "heading_structure_fixed",
    "low_content_quality": "content_quality_improved",
    "poor_content_structure": "content_quality_improved",
    "keyword_optimization": "keywords_optimized",
}


class AccessDenied(Exception):
    """The website does not exist or is not owned by the caller."""
    pass


def new_fix_session_id() -> str:
    return f"fix_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def estimate_fix_time(fix_count: int) -> str:
    """Human-readable duration at two minutes per fix, three minutes minimum."""
    if fix_count <= 0:
        return "0 minutes"
    minutes = max(MIN_FIX_MINUTES, fix_count * MINUTES_PER_FIX)
    if minutes < 60:
        return f"{minutes} minutes"
    return f"{minutes // 60}h {minutes % 60}m"


def calculate_estimated_impact(fixes: list[Fix]) -> str:
    high = sum(1 for fix in fixes if fix.success and fix.impact == "high")
    if high >= 5:
        return "very high"
    if high >= 3:
        return "high"
    if high >= 1:
        return "medium"
    return "low"


def calculate_breakdown(fixes: list[Fix]) -> FixBreakdown:
    breakdown = FixBreakdown()
    for fix in fixes:
        if not fix.success:
            continue
        field_name = _BREAKDOWN_FIELDS.get(canonical_issue_type(fix.type))
        if field_name:
            setattr(breakdown, field_name, getattr(breakdown, field_name) + 1)
    return breakdown


def build_stats(fixes: list[Fix], total_issues: int) -> FixStats:
    successful = sum(1 for fix in fixes if fix.success)
    return FixStats(
        total_issues_found=total_issues,
        fixes_attempted=len(fixes),
        fixes_successful=successful,
        fixes_failed=len(fixes) - successful,
        estimated_impact=calculate_estimated_impact(fixes),
        detailed_breakdown=calculate_breakdown(fixes),
    )


def prioritize_issues(issues: list[TrackedIssue], options: FixOptions) -> list[TrackedIssue]:
    """Filter by requested fix types, order by impact and apply the cap."""
    selected = issues
    if options.fix_types:
        wanted = set(options.fix_types) | {canonical_issue_type(t) for t in options.fix_types}
        selected = [
            issue for issue in selected
            if issue.issue_type in wanted or canonical_issue_type(issue.issue_type) in wanted
        ]

    selected = sorted(
        selected,
        key=lambda issue: IMPACT_PRIORITY[impact_for_severity(issue.severity).value],
        reverse=True,
    )
    if options.max_changes is not None:
        selected = selected[:options.max_changes]
    return selected


class RemediationOrchestrator:
    """Runs remediation for one website at a time."""

    def __init__(
        self,
        store: RemediationStore,
        text_generator: Optional[TextGenerator] = None,
        scorer: Optional[SiteScorer] = None,
        client_factory: Optional[Callable[[WebsiteCredentials], ContentClient]] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the orchestrator.

        Args:
            store: Issue tracking, website, report and activity log storage
            text_generator: Text generation used by the copywriting strategies
            scorer: Site scorer used for reanalysis
            client_factory: Builds a content client from website credentials
            settings: Configuration; defaults to environment settings
        """
        self.store = store
        self.settings = settings or get_settings()
        self.client_factory = client_factory or self._default_client
        self.text_generator = text_generator or TextGenerator.from_settings(self.settings)
        self.scorer = scorer or ContentScorer(
            self.client_factory,
            scan_limit=self.settings.scan_limit,
            per_page=self.settings.fetch_page_size,
        )
        self.reanalyzer = ScoreReanalyzer(store, self.scorer)

    def _default_client(self, credentials: WebsiteCredentials) -> ContentClient:
        return ContentClient(credentials, timeout=self.settings.http_timeout_seconds)

    def _get_website(self, website_id: str, user_id: str) -> Website:
        website = self.store.get_user_website(website_id, user_id)
        if website is None:
            raise AccessDenied(f"Website {website_id} not found or access denied")
        return website

    def _get_fixable_issues(self, website: Website, user_id: str) -> list[TrackedIssue]:
        return self.store.get_tracked_seo_issues(
            website.id,
            user_id,
            statuses=FIXABLE_STATUSES,
            auto_fixable_only=True,
            exclude_recently_fixed=True,
            fixed_within_days=self.settings.fixed_cooldown_days,
        )

    async def analyze_and_fix(
        self,
        website_id: str,
        user_id: str,
        dry_run: bool = True,
        options: Optional[FixOptions] = None,
    ) -> RemediationResult:
        """Remediate the tracked SEO issues of a website.

        Args:
            website_id: Website to remediate
            user_id: Caller; must own the website
            dry_run: Simulate without touching the content platform
            options: Fix type filter, cap, backup and reanalysis options

        Returns:
            RemediationResult describing the run, also on failure
        """
        options = options or FixOptions()
        session_id = new_fix_session_id()
        log = RunLog(session_id=session_id)

        try:
            website = self._get_website(website_id, user_id)
            log.info(f"Starting AI fix {'dry run' if dry_run else 'run'} for {website.name}")

            warnings = reset_stuck_issues(self.store, website.id, user_id, log, session_id)

            issues = self._get_fixable_issues(website, user_id)
            selected = prioritize_issues(issues, options)
            if not selected:
                log.info("All fixable SEO issues have already been addressed")
                return self._nothing_to_fix(dry_run, session_id, log)

            log.info(f"Found {len(issues)} fixable issues, processing {len(selected)}")
            fixes = [Fix.from_tracked_issue(issue) for issue in selected]

            if dry_run:
                return self._dry_run(website, fixes, len(issues), options, session_id, log)
            return await self._apply(
                website, user_id, selected, fixes, len(issues), options, session_id, log, warnings
            )
        except AccessDenied as e:
            log.error(str(e))
            return self._failure(str(e), dry_run, session_id, log)
        except Exception as e:
            logger.exception(f"AI fix failed for website {website_id}")
            log.error(f"AI fix failed: {e}")
            return self._failure(str(e), dry_run, session_id, log)

    def analyze_and_fix_sync(
        self,
        website_id: str,
        user_id: str,
        dry_run: bool = True,
        options: Optional[FixOptions] = None,
    ) -> RemediationResult:
        """Synchronous wrapper for analyze_and_fix."""
        return asyncio.run(self.analyze_and_fix(website_id, user_id, dry_run, options))

    def _dry_run(
        self,
        website: Website,
        fixes: list[Fix],
        total_issues: int,
        options: FixOptions,
        session_id: str,
        log: RunLog,
    ) -> RemediationResult:
        simulated = [fix.model_copy(update={"success": True}) for fix in fixes]
        for fix in simulated:
            log.info(f"Would fix: {fix.description}")

        reanalysis = None
        if options.enable_reanalysis:
            reanalysis = self.reanalyzer.simulate(website, simulated)

        return self._success(simulated, [], total_issues, True, reanalysis, session_id, log)

    async def _apply(
        self,
        website: Website,
        user_id: str,
        selected: list[TrackedIssue],
        fixes: list[Fix],
        total_issues: int,
        options: FixOptions,
        session_id: str,
        log: RunLog,
        warnings: list[str],
    ) -> RemediationResult:
        applied: list[Fix] = []
        errors: list[str] = []
        content_ids: list[int] = []

        try:
            with self.client_factory(website.credentials()) as client:
                client.test_connection()
                log.success("Content platform connection verified")

                self.store.bulk_update_seo_issue_statuses(
                    [issue.id for issue in selected],
                    IssueStatus.FIXING.value,
                    fix_session_id=session_id,
                    fix_method=FIX_METHOD,
                )
                log.info(f"Marked {len(selected)} issues as fixing")

                if not options.skip_backup:
                    self._create_backup(website, user_id, session_id, log)

                ctx = StrategyContext(
                    client=client,
                    copywriter=Copywriter(self.text_generator, log),
                    log=log,
                    scan_limit=self.settings.scan_limit,
                    per_page=self.settings.fetch_page_size,
                )
                outcome = apply_fixes(ctx, fixes)
                errors.extend(outcome.errors)
                content_ids.extend(outcome.content_ids)
                applied = summarize_outcomes(fixes, outcome.fixes)

                reconcile(self.store, selected, applied, session_id, log)
        finally:
            warnings.extend(cleanup_sweep(self.store, website.id, user_id, session_id, log))

        successful = sum(1 for fix in applied if fix.success)
        reanalysis = None
        if options.enable_reanalysis:
            if successful or options.force_reanalysis:
                delay = options.reanalysis_delay
                if delay is None:
                    delay = self.settings.reanalysis_delay_seconds
                reanalysis = await self.reanalyzer.reanalyze(website, delay, log)
            else:
                log.info("Skipping reanalysis: no fixes succeeded")

        self._record_activity(website, user_id, applied, reanalysis, session_id, content_ids, warnings, log)
        return self._success(applied, errors, total_issues, False, reanalysis, session_id, log)

    def _create_backup(self, website: Website, user_id: str, session_id: str, log: RunLog):
        try:
            self.store.create_backup(
                user_id,
                website.id,
                BACKUP_TYPE,
                metadata={
                    "reason": "Before AI fixes",
                    "website_url": website.url,
                    "fix_session_id": session_id,
                    "timestamp": utcnow().isoformat(),
                },
            )
            log.success("Backup created")
        except Exception as e:
            log.warning(f"Backup creation failed (continuing anyway): {e}")

    def _record_activity(
        self,
        website: Website,
        user_id: str,
        fixes: list[Fix],
        reanalysis: Optional[ReanalysisResult],
        session_id: str,
        content_ids: list[int],
        warnings: list[str],
        log: RunLog,
    ):
        successful = sum(1 for fix in fixes if fix.success)
        try:
            self.store.create_activity_log(
                user_id,
                website.id,
                ACTIVITY_TYPE,
                f"AI fixes: {successful} successful, {len(fixes) - successful} failed",
                metadata={
                    "fix_session_id": session_id,
                    "fixes_applied": len(fixes),
                    "fixes_successful": successful,
                    "fixes_failed": len(fixes) - successful,
                    "content_ids": content_ids,
                    "concurrency_warnings": warnings,
                    "warnings": list(log.warnings),
                    "reanalysis": reanalysis.model_dump() if reanalysis else None,
                },
            )
        except Exception as e:
            logger.exception("Failed to write activity log")
            log.warning(f"Activity log entry could not be written: {e}")

    def _success(
        self,
        fixes: list[Fix],
        errors: list[str],
        total_issues: int,
        dry_run: bool,
        reanalysis: Optional[ReanalysisResult],
        session_id: str,
        log: RunLog,
    ) -> RemediationResult:
        stats = build_stats(fixes, total_issues)
        if dry_run:
            message = f"Dry run complete. Found {stats.fixes_attempted} fixable issues."
        else:
            message = f"Applied {stats.fixes_successful} fixes successfully."

        if reanalysis and reanalysis.success:
            message += (
                f" SEO score: {reanalysis.initial_score:g} → {reanalysis.final_score:g}"
                f" ({reanalysis.score_improvement:+g})"
            )

        return RemediationResult(
            success=True,
            dry_run=dry_run,
            fixes_applied=fixes,
            stats=stats,
            errors=errors or None,
            message=message,
            detailed_log=log.snapshot(),
            reanalysis=reanalysis,
            fix_session_id=session_id,
        )

    def _nothing_to_fix(self, dry_run: bool, session_id: str, log: RunLog) -> RemediationResult:
        return RemediationResult(
            success=True,
            dry_run=dry_run,
            stats=FixStats(estimated_impact="none"),
            message="All fixable SEO issues have already been addressed.",
            detailed_log=log.snapshot(),
            fix_session_id=session_id,
        )

    def _failure(self, error: str, dry_run: bool, session_id: str, log: RunLog) -> RemediationResult:
        return RemediationResult(
            success=False,
            dry_run=dry_run,
            errors=[error],
            message=f"AI fix failed: {error}",
            detailed_log=log.snapshot(),
            fix_session_id=session_id,
        )

    def get_available_fix_types(self, website_id: str, user_id: str) -> AvailableFixes:
        """Summarize what a run would attempt. Returns an empty result on any error."""
        try:
            website = self._get_website(website_id, user_id)
            issues = self._get_fixable_issues(website, user_id)
        except Exception as e:
            logger.warning(f"Could not load fixable issues for website {website_id}: {e}")
            return AvailableFixes()

        breakdown: dict[str, int] = {}
        for issue in issues:
            breakdown[issue.issue_type] = breakdown.get(issue.issue_type, 0) + 1

        return AvailableFixes(
            available_fixes=list(breakdown),
            total_fixable_issues=len(issues),
            estimated_time=estimate_fix_time(len(issues)),
            breakdown=breakdown,
        )
