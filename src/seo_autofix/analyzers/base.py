"""Base analyzer and scorer interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup

from ..models import ContentItem, Severity, Website


@dataclass
class Finding:
    """An SEO problem found on one content item."""
    issue_type: str
    severity: str
    title: str
    description: str
    content_id: int
    content_type: str


class BaseAnalyzer(ABC):
    """Base class for content analyzers.

    Each analyzer checks one content item and returns the findings on it.
    """

    @abstractmethod
    def analyze(self, item: ContentItem, soup: Optional[BeautifulSoup] = None) -> list[Finding]:
        """Analyze a content item.

        Args:
            item: Post or page fetched from the content platform
            soup: Optional pre-parsed body of ``item``

        Returns:
            List of findings for this item
        """
        pass

    def _get_soup(self, html: str, soup: Optional[BeautifulSoup] = None) -> BeautifulSoup:
        """Get or create BeautifulSoup object."""
        if soup is not None:
            return soup
        return BeautifulSoup(html or "", "html.parser")

    def _create_finding(
        self,
        item: ContentItem,
        issue_type: str,
        severity: Severity,
        title: str,
        description: str,
    ) -> Finding:
        return Finding(
            issue_type=issue_type,
            severity=severity.value,
            title=title,
            description=description,
            content_id=item.id,
            content_type=item.content_type,
        )


class SiteScorer(ABC):
    """Produces a site-wide SEO score without touching issue tracking."""

    @abstractmethod
    def score(self, website: Website) -> float:
        """Return a 0-100 score for ``website``."""
        pass
