"""Score reanalysis after fixes, and score estimation for dry runs."""

import asyncio
import logging
import time

from ..analyzers.base import SiteScorer
from ..models import Fix, ReanalysisResult, Website, canonical_issue_type, utcnow
from ..storage.base import RemediationStore
from .run_log import RunLog

logger = logging.getLogger(__name__)

SCORE_WEIGHTS: dict[str, float] = {
    "missing_meta_description": 5.0,
    "poor_title_tag": 5.0,
    "missing_h1": 4.5,
    "heading_structure": 3.5,
    "content_quality": 4.0,
    "low_content_quality": 4.0,
    "keyword_optimization": 3.5,
    "missing_alt_text": 2.5,
}
DEFAULT_WEIGHT = 2.0
IMPACT_MULTIPLIERS: dict[str, float] = {"high": 1.0, "medium": 0.7, "low": 0.4}
MAX_ESTIMATED_IMPROVEMENT = 40.0


def estimate_score_improvement(fixes: list[Fix]) -> float:
    """Weighted sum over successful fixes, capped at 40 points."""
    improvement = 0.0
    for fix in fixes:
        if not fix.success:
            continue
        weight = SCORE_WEIGHTS.get(fix.type) or SCORE_WEIGHTS.get(canonical_issue_type(fix.type), DEFAULT_WEIGHT)
        improvement += weight * IMPACT_MULTIPLIERS.get(fix.impact, IMPACT_MULTIPLIERS["low"])
    return round(min(improvement, MAX_ESTIMATED_IMPROVEMENT), 1)


def latest_report_score(store: RemediationStore, website_id: str) -> float:
    reports = store.get_seo_reports_by_website(website_id)
    return reports[0].score if reports else 0.0


class ScoreReanalyzer:
    """Re-scores a website once fixes have had time to propagate."""

    def __init__(self, store: RemediationStore, scorer: SiteScorer):
        self.store = store
        self.scorer = scorer

    def simulate(self, website: Website, fixes: list[Fix]) -> ReanalysisResult:
        """Estimate the outcome of a dry run without contacting the site."""
        initial = latest_report_score(self.store, website.id)
        improvement = estimate_score_improvement(fixes)
        return ReanalysisResult(
            enabled=True,
            initial_score=initial,
            final_score=min(100.0, initial + improvement),
            score_improvement=improvement,
            analysis_time=0,
            success=True,
            simulated=True,
        )

    async def reanalyze(self, website: Website, delay: float, log: RunLog) -> ReanalysisResult:
        """Wait ``delay`` seconds, rescan in score-only mode and persist the score.

        Failures are reported in the result, never raised.
        """
        started = time.monotonic()
        try:
            if delay > 0:
                log.info(f"Waiting {delay:g}s for changes to propagate...")
                await asyncio.sleep(delay)

            initial = latest_report_score(self.store, website.id)
            final = self.scorer.score(website)

            self.store.update_website(website.id, seo_score=final, last_analyzed=utcnow())
            self.store.create_seo_report(website.id, final)

            improvement = round(final - initial, 1)
            log.success(f"Reanalysis complete: {initial:g} -> {final:g} ({improvement:+g})")
            return ReanalysisResult(
                enabled=True,
                initial_score=initial,
                final_score=final,
                score_improvement=improvement,
                analysis_time=round(time.monotonic() - started, 2),
                success=True,
            )
        except Exception as e:
            logger.exception(f"Reanalysis failed for website {website.id}")
            log.warning(f"Reanalysis failed: {e}")
            return ReanalysisResult(
                enabled=True,
                analysis_time=round(time.monotonic() - started, 2),
                success=False,
                error=str(e),
            )
