"""Tests for analyzer modules."""

import pytest
from bs4 import BeautifulSoup

from seo_autofix.analyzers import ContentScorer, SEOAnalyzer
from seo_autofix.models import ContentItem, Severity

from helpers import FakeContentPlatform, make_item, make_website

GOOD_TITLE = "Coffee brewing at home for curious beginners"
GOOD_CONTENT = "<h1>Coffee at home</h1><p>" + ("coffee " + "lorem " * 49) * 7 + "</p>"


def item(title="", content="", excerpt="", item_id=1) -> ContentItem:
    return ContentItem(id=item_id, content_type="post", title=title, content=content, excerpt=excerpt)


class TestSEOAnalyzer:
    """Tests for SEO analyzer."""

    def setup_method(self):
        self.analyzer = SEOAnalyzer()

    def types(self, findings):
        return {f.issue_type for f in findings}

    def test_missing_title(self):
        """Test detection of missing title."""
        findings = self.analyzer.analyze(item(content=GOOD_CONTENT, excerpt="A" * 130))

        title_findings = [f for f in findings if f.issue_type == "poor_title_tag"]
        assert len(title_findings) == 1
        assert title_findings[0].severity == Severity.CRITICAL.value

    def test_short_title(self):
        """Test detection of a title under the minimum length."""
        findings = self.analyzer.analyze(item("Short", GOOD_CONTENT, "A" * 130))
        assert any(f.title == "Title too short" for f in findings)

    def test_missing_meta_description(self):
        """Test detection of missing meta description."""
        findings = self.analyzer.analyze(item(GOOD_TITLE, GOOD_CONTENT))
        assert "missing_meta_description" in self.types(findings)

    def test_long_meta_description(self):
        """Test detection of an overlong meta description."""
        findings = self.analyzer.analyze(item(GOOD_TITLE, GOOD_CONTENT, "A" * 200))
        assert "meta_description_too_long" in self.types(findings)

    def test_missing_h1(self):
        """Test detection of missing H1."""
        findings = self.analyzer.analyze(item(GOOD_TITLE, "<p>Content</p>", "A" * 130))
        assert "missing_h1" in self.types(findings)

    def test_multiple_h1(self):
        """Test detection of multiple H1 tags."""
        findings = self.analyzer.analyze(item(GOOD_TITLE, "<h1>First</h1><h1>Second</h1>", "A" * 130))
        assert any(f.title == "Multiple H1 headings" for f in findings)

    def test_skipped_heading_level(self):
        """Test detection of a skipped heading level."""
        findings = self.analyzer.analyze(item(GOOD_TITLE, "<h1>A</h1><h3>B</h3>", "A" * 130))
        assert "improper_heading_hierarchy" in self.types(findings)

    def test_images_missing_alt(self):
        """Test that only images without alt text are reported."""
        findings = self.analyzer.analyze(
            item(GOOD_TITLE, '<h1>A</h1><img src="/a.jpg"><img src="/b.jpg" alt="B">', "A" * 130)
        )
        alt = [f for f in findings if f.issue_type == "missing_alt_text"]
        assert len(alt) == 1
        assert "1 image" in alt[0].description

    def test_thin_content(self):
        """Test detection of thin content."""
        findings = self.analyzer.analyze(item(GOOD_TITLE, "<h1>A</h1><p>Too short.</p>", "A" * 130))
        assert "low_content_quality" in self.types(findings)

    def test_keyword_density(self):
        """Test detection of title keywords missing from the body."""
        content = "<h1>Heading</h1><p>" + "lorem " * 350 + "</p>"
        findings = self.analyzer.analyze(item(GOOD_TITLE, content, "A" * 130))
        assert "keyword_optimization" in self.types(findings)

    def test_valid_seo(self):
        """Test that valid SEO doesn't generate false positives."""
        findings = self.analyzer.analyze(item(GOOD_TITLE, GOOD_CONTENT, "A" * 130))
        assert findings == []

    def test_uses_provided_soup(self):
        """Test that a pre-parsed soup is used for structure checks."""
        soup = BeautifulSoup("<h1>One</h1><h1>Two</h1>", "html.parser")
        findings = self.analyzer.analyze(item(GOOD_TITLE, GOOD_CONTENT, "A" * 130), soup)
        assert "heading_structure" in self.types(findings)


class TestContentScorer:
    """Tests for the score-only rescan."""

    def test_mean_of_item_scores(self):
        """Test that the site score is the mean of item scores."""
        platform = FakeContentPlatform(posts=[
            make_item(1, GOOD_TITLE, GOOD_CONTENT, "A" * 130),
            make_item(2, "", "<p>Short.</p>", ""),
        ])
        scorer = ContentScorer(platform.client_factory)

        assert scorer.score(make_website()) == 73.5

    def test_perfect_score(self):
        """Test that clean content scores 100."""
        platform = FakeContentPlatform(pages=[make_item(1, GOOD_TITLE, GOOD_CONTENT, "A" * 130)])
        assert ContentScorer(platform.client_factory).score(make_website()) == 100.0

    def test_no_content(self):
        """Test scoring a site with no content."""
        scorer = ContentScorer(FakeContentPlatform().client_factory)
        with pytest.raises(ValueError):
            scorer.score(make_website())

    def test_scorer_does_not_write(self):
        """Test that scoring never updates content."""
        platform = FakeContentPlatform(posts=[make_item(1, "", "<p>x</p>", "")])
        ContentScorer(platform.client_factory).score(make_website())

        assert platform.updates == []
        assert all(r.method == "GET" for r in platform.requests)
