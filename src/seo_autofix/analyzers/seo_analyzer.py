"""SEO analyzer for published posts and pages.

Checks for:
- Missing, short or long titles
- Missing or out-of-range meta descriptions (the item excerpt)
- Missing or multiple H1 tags and skipped heading levels
- Images without alt text
- Thin content
- Title keyword density
"""

from typing import Optional

from bs4 import BeautifulSoup

from ..fixer.dom import extract_text, find_skipped_heading_level, images_missing_alt
from ..fixer.keywords import MAX_DENSITY, MIN_DENSITY, extract_keywords, keyword_density
from ..models import ContentItem, IssueType, Severity
from .base import BaseAnalyzer, Finding

MIN_WORD_COUNT = 300


class SEOAnalyzer(BaseAnalyzer):
    """Analyzer for SEO-related issues on a single content item."""

    def analyze(self, item: ContentItem, soup: Optional[BeautifulSoup] = None) -> list[Finding]:
        """Analyze a content item for SEO issues."""
        findings = []
        soup = self._get_soup(item.content, soup)

        findings.extend(self._check_title(item))
        findings.extend(self._check_meta_description(item))
        findings.extend(self._check_headings(item, soup))
        findings.extend(self._check_images(item, soup))
        findings.extend(self._check_content(item))
        findings.extend(self._check_keywords(item))

        return findings

    def _check_title(self, item: ContentItem) -> list[Finding]:
        title = extract_text(item.title)
        if not title:
            return [self._create_finding(
                item, IssueType.POOR_TITLE_TAG.value, Severity.CRITICAL,
                "Missing title",
                "The item has no title.",
            )]
        if len(title) < 30:
            return [self._create_finding(
                item, IssueType.POOR_TITLE_TAG.value, Severity.WARNING,
                "Title too short",
                f"Title is only {len(title)} characters. Short titles may not be descriptive enough.",
            )]
        if len(title) > 60:
            return [self._create_finding(
                item, IssueType.POOR_TITLE_TAG.value, Severity.INFO,
                "Title too long",
                f"Title is {len(title)} characters. Search engines may truncate it.",
            )]
        return []

    def _check_meta_description(self, item: ContentItem) -> list[Finding]:
        meta = extract_text(item.excerpt)
        if not meta:
            return [self._create_finding(
                item, IssueType.MISSING_META_DESCRIPTION.value, Severity.CRITICAL,
                "Missing meta description",
                "No meta description found. Search engines may generate one automatically.",
            )]
        if len(meta) > 160:
            return [self._create_finding(
                item, IssueType.META_DESCRIPTION_TOO_LONG.value, Severity.WARNING,
                "Meta description too long",
                f"Meta description is {len(meta)} characters and will likely be truncated.",
            )]
        if len(meta) < 120:
            return [self._create_finding(
                item, IssueType.MISSING_META_DESCRIPTION.value, Severity.INFO,
                "Meta description too short",
                f"Meta description is only {len(meta)} characters.",
            )]
        return []

    def _check_headings(self, item: ContentItem, soup: BeautifulSoup) -> list[Finding]:
        findings = []
        h1_count = len(soup.find_all("h1"))

        if h1_count == 0:
            findings.append(self._create_finding(
                item, IssueType.MISSING_H1.value, Severity.CRITICAL,
                "Missing H1 heading",
                "The content has no H1 heading.",
            ))
        elif h1_count > 1:
            findings.append(self._create_finding(
                item, IssueType.HEADING_STRUCTURE.value, Severity.WARNING,
                "Multiple H1 headings",
                f"Found {h1_count} H1 headings. Use a single H1 per page.",
            ))

        skipped = find_skipped_heading_level(soup)
        if skipped:
            findings.append(self._create_finding(
                item, IssueType.IMPROPER_HEADING_HIERARCHY.value, Severity.INFO,
                "Skipped heading level",
                f"Heading jumps from H{skipped[0]} to H{skipped[1]}.",
            ))
        return findings

    def _check_images(self, item: ContentItem, soup: BeautifulSoup) -> list[Finding]:
        missing = images_missing_alt(soup)
        if not missing:
            return []
        return [self._create_finding(
            item, IssueType.MISSING_ALT_TEXT.value, Severity.WARNING,
            "Images missing alt text",
            f"{len(missing)} image(s) have no alt text.",
        )]

    def _check_content(self, item: ContentItem) -> list[Finding]:
        words = len(extract_text(item.content).split())
        if words >= MIN_WORD_COUNT:
            return []
        return [self._create_finding(
            item, IssueType.LOW_CONTENT_QUALITY.value, Severity.WARNING,
            "Thin content",
            f"Content has only {words} words.",
        )]

    def _check_keywords(self, item: ContentItem) -> list[Finding]:
        keywords = extract_keywords(item.title)
        if not keywords:
            return []
        density = keyword_density(extract_text(item.content), keywords)
        if MIN_DENSITY <= density <= MAX_DENSITY:
            return []
        joined = ", ".join(keywords)
        return [self._create_finding(
            item, IssueType.KEYWORD_OPTIMIZATION.value, Severity.INFO,
            "Keyword density out of range",
            f"Density of {joined} is {density:.1f}% (target {MIN_DENSITY:.0f}-{MAX_DENSITY:.0f}%).",
        )]
