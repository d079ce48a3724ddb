"""Maps fix outcomes back onto tracked issues.

Tracked issues move through the lifecycle defined in ``models``. This module
decides, for the issues a session marked ``fixing``, whether each one ends up
``fixed`` or back at ``detected``, and makes sure nothing is left in
``fixing`` when a run ends.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..models import Fix, InvalidStatusTransition, IssueStatus, TrackedIssue, canonical_issue_type
from ..storage.base import RemediationStore
from .run_log import RunLog

logger = logging.getLogger(__name__)

FIX_METHOD = "ai_automatic"


@dataclass
class ReconciliationResult:
    fixed: list[str] = field(default_factory=list)
    reverted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def is_related_issue(fix: Fix, issue: TrackedIssue) -> bool:
    """Heuristic match between a fix and a tracked issue."""
    fix_type = fix.type.lower().replace("_", " ")
    issue_title = issue.issue_title.lower()
    issue_type = issue.issue_type.lower().replace("_", " ")
    return (
        fix_type in issue_title
        or issue_type in fix_type
        or canonical_issue_type(fix.type) == canonical_issue_type(issue.issue_type)
    )


def match_fixes_to_issues(fixes: list[Fix], issues: list[TrackedIssue]) -> dict[str, list[Fix]]:
    """Assign fixes to issues in two passes.

    1. Fixes carrying a ``tracked_issue_id`` of one of ``issues`` go to that
       issue.
    2. Remaining fixes without an id each claim the first related issue not
       yet claimed.

    Returns:
        Issue id to the list of fixes matched to it
    """
    session_ids = {issue.id for issue in issues}
    matches: dict[str, list[Fix]] = {}
    unmatched: list[Fix] = []

    for fix in fixes:
        if fix.tracked_issue_id in session_ids:
            matches.setdefault(fix.tracked_issue_id, []).append(fix)
        elif fix.tracked_issue_id is None:
            unmatched.append(fix)

    claimed = frozenset(matches)
    for fix in unmatched:
        for issue in issues:
            if issue.id not in claimed and is_related_issue(fix, issue):
                matches[issue.id] = [fix]
                claimed = claimed | {issue.id}
                break

    return matches


def _move(
    store: RemediationStore,
    issue_id: str,
    status: IssueStatus,
    session_id: Optional[str],
    log: RunLog,
    notes: Optional[str] = None,
) -> bool:
    try:
        store.update_seo_issue_status(
            issue_id,
            status.value,
            fix_method=FIX_METHOD,
            fix_session_id=session_id,
            resolution_notes=notes,
        )
    except (InvalidStatusTransition, KeyError) as e:
        log.warning(f"Could not move issue {issue_id} to {status.value}: {e}")
        return False
    return True


def reconcile(
    store: RemediationStore,
    session_issues: list[TrackedIssue],
    fixes: list[Fix],
    session_id: str,
    log: RunLog,
) -> ReconciliationResult:
    """Settle every issue this session marked ``fixing``."""
    result = ReconciliationResult()
    matches = match_fixes_to_issues(fixes, session_issues)

    for issue in session_issues:
        matched = matches.get(issue.id)
        if matched and all(fix.success for fix in matched):
            notes = "; ".join(fix.description for fix in matched)[:500]
            if _move(store, issue.id, IssueStatus.FIXED, session_id, log, notes):
                result.fixed.append(issue.id)
            else:
                result.skipped.append(issue.id)
            continue

        if matched:
            errors = [fix.error for fix in matched if fix.error]
            notes = f"Fix failed: {'; '.join(errors)}" if errors else "Fix failed"
        else:
            notes = "No fix outcome recorded"
        if _move(store, issue.id, IssueStatus.DETECTED, session_id, log, notes):
            result.reverted.append(issue.id)
        else:
            result.skipped.append(issue.id)

    log.info(
        f"Reconciled {len(session_issues)} issues: {len(result.fixed)} fixed, "
        f"{len(result.reverted)} reverted to detected"
    )
    return result


def _reset_fixing(
    store: RemediationStore,
    website_id: str,
    user_id: str,
    session_id: Optional[str],
    log: RunLog,
    reason: str,
) -> tuple[int, list[str]]:
    stuck = store.get_tracked_seo_issues(website_id, user_id, statuses=[IssueStatus.FIXING.value])
    warnings: list[str] = []
    reset = 0
    for issue in stuck:
        if issue.fix_session_id and issue.fix_session_id != session_id:
            warning = (
                f"Issue {issue.id} was in 'fixing' under session {issue.fix_session_id}; "
                "another run may be active on this website"
            )
            log.warning(warning)
            warnings.append(warning)
        if _move(store, issue.id, IssueStatus.DETECTED, session_id, log, reason):
            reset += 1
    return reset, warnings


def reset_stuck_issues(
    store: RemediationStore,
    website_id: str,
    user_id: str,
    log: RunLog,
    session_id: Optional[str] = None,
) -> list[str]:
    """Return issues left in ``fixing`` by an earlier run to ``detected``.

    Returns:
        Concurrency warnings for issues held by another session
    """
    reset, warnings = _reset_fixing(
        store, website_id, user_id, session_id, log, "Reset from stuck fixing state"
    )
    if reset:
        log.info(f"Reset {reset} stuck issues from fixing to detected")
    return warnings


def cleanup_sweep(
    store: RemediationStore,
    website_id: str,
    user_id: str,
    session_id: str,
    log: RunLog,
) -> list[str]:
    """Final sweep so that no issue stays in ``fixing`` after a run."""
    reset, warnings = _reset_fixing(
        store, website_id, user_id, session_id, log, "Reset by cleanup after fix session"
    )
    if reset:
        log.warning(f"Cleanup reset {reset} issues still in fixing")
    return warnings
