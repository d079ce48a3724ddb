"""Score-only rescan of a website's recent content."""

import logging
from typing import Callable, Optional

from ..fixer.content_client import ContentClient
from ..models import Severity, Website, WebsiteCredentials
from .base import BaseAnalyzer, SiteScorer
from .seo_analyzer import SEOAnalyzer

logger = logging.getLogger(__name__)

SEVERITY_PENALTIES = {
    Severity.CRITICAL.value: 15,
    Severity.WARNING.value: 8,
    Severity.INFO.value: 3,
}


class ContentScorer(SiteScorer):
    """Scores a site as the mean per-item score of its recent posts and pages.

    Findings are only used for the score; nothing is written to issue
    tracking.
    """

    def __init__(
        self,
        client_factory: Callable[[WebsiteCredentials], ContentClient],
        analyzer: Optional[BaseAnalyzer] = None,
        scan_limit: int = 10,
        per_page: int = 50,
    ):
        self.client_factory = client_factory
        self.analyzer = analyzer or SEOAnalyzer()
        self.scan_limit = scan_limit
        self.per_page = per_page

    def score(self, website: Website) -> float:
        with self.client_factory(website.credentials()) as client:
            items = []
            for content_type in ("post", "page"):
                items.extend(client.get_items(content_type, per_page=self.per_page)[:self.scan_limit])

        if not items:
            raise ValueError("No published content available to score")

        item_scores = []
        for item in items:
            findings = self.analyzer.analyze(item)
            penalty = sum(SEVERITY_PENALTIES.get(f.severity, 0) for f in findings)
            item_scores.append(max(0, 100 - penalty))

        score = round(sum(item_scores) / len(item_scores), 1)
        logger.info(f"Scored {len(items)} items for website {website.id}: {score}")
        return score
