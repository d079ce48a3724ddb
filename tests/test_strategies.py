"""Tests for the fix strategy registry and mutation pipeline."""

import pytest

from seo_autofix.fixer.content_client import ContentClientError
from seo_autofix.fixer.copywriter import Copywriter
from seo_autofix.fixer.run_log import RunLog
from seo_autofix.fixer.strategies import (
    FIX_STRATEGIES,
    OptimisticConvergence,
    StrategyContext,
    StrategyMissing,
    apply_fixes,
    resolve_strategy,
    summarize_outcomes,
)
from seo_autofix.fixer.text_generation import TextGenerator
from seo_autofix.models import Fix, IssueType, WebsiteCredentials

from helpers import FakeContentPlatform, make_item

CREDENTIALS = WebsiteCredentials(base_url="https://example.com", username="admin", secret="pw")


def make_fix(fix_type: str, issue_id: str = "issue-1", impact: str = "medium") -> Fix:
    return Fix(type=fix_type, description=f"Fix {fix_type}", impact=impact, tracked_issue_id=issue_id)


class TestRegistry:
    """Tests for strategy lookup."""

    def test_every_issue_type_registered(self):
        """Test that every issue type has a strategy."""
        assert set(FIX_STRATEGIES) == set(IssueType)

    def test_resolve_known_type(self):
        """Test resolving a registered type."""
        assert resolve_strategy("missing_h1") is FIX_STRATEGIES[IssueType.MISSING_H1]

    def test_resolve_unknown_type(self):
        """Test that an unknown type raises StrategyMissing."""
        with pytest.raises(StrategyMissing):
            resolve_strategy("broken_links")


class TestOptimisticConvergence:
    """Tests for the convergence policy."""

    def test_already_compliant(self):
        """Test marking fixes already compliant."""
        fixes = OptimisticConvergence.already_compliant([make_fix("missing_alt_text")])
        assert fixes[0].success
        assert "already compliant" in fixes[0].description

    def test_no_changes_needed_skips_recorded(self):
        """Test that recorded fixes are not marked again."""
        recorded = [make_fix("missing_alt_text", "a")]
        fixes = [make_fix("missing_alt_text", "a"), make_fix("missing_alt_text", "b")]
        result = OptimisticConvergence.no_changes_needed(fixes, recorded)
        assert [f.tracked_issue_id for f in result] == ["b"]
        assert result[0].success

    def test_assume_compliant(self):
        """Test marking a group compliant after an error."""
        result = OptimisticConvergence.assume_compliant([make_fix("poor_title_tag")], RuntimeError("boom"))
        assert result[0].success
        assert "boom" in result[0].description

    def test_missing_target_detection(self):
        """Test detection of missing target errors."""
        assert OptimisticConvergence.indicates_missing_target(ContentClientError("gone", status_code=404))
        assert OptimisticConvergence.indicates_missing_target(ContentClientError("Post not found"))
        assert not OptimisticConvergence.indicates_missing_target(ContentClientError("server error", status_code=500))


class TestPipeline:
    """Tests for apply_fixes against a fake platform."""

    def setup_method(self):
        self.platform = FakeContentPlatform(
            posts=[
                make_item(
                    1,
                    title="Brewing coffee at home for beginners",
                    content='<h1>A</h1><p>x</p><h1>B</h1><img src="/uploads/cat-photo.jpg">',
                    excerpt="<p>" + "m" * 40 + "</p>",
                ),
                make_item(
                    2,
                    title="Second post about grinding beans well",
                    content="<h1>Only</h1><p>Fine.</p>",
                    excerpt="y" * 140,
                ),
            ],
        )
        self.log = RunLog()

    def run(self, fixes, platform=None):
        platform = platform or self.platform
        with platform.client_factory(CREDENTIALS) as client:
            ctx = StrategyContext(
                client=client,
                copywriter=Copywriter(TextGenerator([]), self.log),
                log=self.log,
            )
            return apply_fixes(ctx, fixes)

    def test_alt_text_applied(self):
        """Test that missing alt text is filled in."""
        outcome = self.run([make_fix("missing_alt_text")])

        assert len(self.platform.updates) == 1
        assert 'alt="cat photo"' in self.platform.content("posts", 1)
        assert outcome.fixes[0].success
        assert outcome.fixes[0].content_id == 1
        assert outcome.content_ids == [1]

    def test_alt_text_leaves_author_prose_untouched(self):
        """Test that an alt text fix writes surrounding paragraphs back unchanged."""
        prose = "<p>We are ensuring readability for everyone.</p><p>Good structure matters.</p>"
        platform = FakeContentPlatform(posts=[make_item(1, "T", prose + '<img src="/uploads/cat-photo.jpg">')])
        outcome = self.run([make_fix("missing_alt_text")], platform)

        content = platform.content("posts", 1)
        assert content.startswith(prose)
        assert 'alt="cat photo"' in content
        assert outcome.fixes[0].success

    def test_heading_normalized(self):
        """Test that extra H1 tags are demoted."""
        self.run([make_fix("heading_structure")])

        content = self.platform.content("posts", 1)
        assert content.count("<h1>") == 1
        assert "<h1>A</h1><p>x</p><h2>B</h2>" in content

    def test_meta_description_window(self):
        """Test that short excerpts are fitted into the window."""
        outcome = self.run([make_fix("missing_meta_description")])

        assert len(self.platform.updates) == 1
        collection, item_id, data = self.platform.updates[0]
        assert item_id == 1
        assert 120 <= len(data["excerpt"]) <= 160
        assert outcome.fixes[0].success

    def test_meta_description_in_window_untouched(self):
        """Test that in-window excerpts are not rewritten."""
        platform = FakeContentPlatform(posts=[make_item(2, "T", "<p>x</p>", "y" * 140)])
        outcome = self.run([make_fix("missing_meta_description")], platform)

        assert platform.updates == []
        assert outcome.fixes[0].success
        assert "already compliant" in outcome.fixes[0].description

    def test_second_pass_is_idempotent(self):
        """Test that a second pass makes no updates."""
        fixes = [make_fix("missing_alt_text", "a"), make_fix("heading_structure", "b")]
        self.run(fixes)
        first_pass_updates = len(self.platform.updates)

        outcome = self.run(fixes)

        assert len(self.platform.updates) == first_pass_updates
        assert all(f.success for f in outcome.fixes)
        assert all("already compliant" in f.description for f in outcome.fixes)

    def test_unknown_type_fails_without_aborting(self):
        """Test that an unknown type fails alone."""
        outcome = self.run([make_fix("broken_links", "a"), make_fix("missing_alt_text", "b")])

        by_issue = {f.tracked_issue_id: f for f in outcome.fixes}
        assert by_issue["a"].success is False
        assert "No fix strategy" in by_issue["a"].error
        assert by_issue["b"].success is True

    def test_update_failure_recorded(self):
        """Test that update failures are recorded."""
        platform = FakeContentPlatform(
            posts=[make_item(1, "T", '<img src="/a/dog.jpg">')],
            update_errors={1: (500, "write failed")},
        )
        outcome = self.run([make_fix("missing_alt_text")], platform)

        assert outcome.fixes[0].success is False
        assert "write failed" in outcome.fixes[0].error
        assert outcome.errors

    def test_missing_target_treated_as_compliant(self):
        """Test that a vanished item counts as compliant."""
        platform = FakeContentPlatform(
            posts=[make_item(1, "T", '<img src="/a/dog.jpg">')],
            update_errors={1: (404, "Item not found")},
        )
        outcome = self.run([make_fix("missing_alt_text")], platform)

        assert outcome.errors == []
        assert outcome.fixes[0].success

    def test_collection_fetch_failure_tolerated(self):
        """Test that one failed collection does not stop the run."""
        platform = FakeContentPlatform(
            posts=[make_item(1, "T", '<img src="/a/dog.jpg">')],
            list_errors={"pages": 500},
        )
        outcome = self.run([make_fix("missing_alt_text")], platform)

        assert len(platform.updates) == 1
        assert outcome.fixes[0].success
        assert any("pages" in w for w in self.log.warnings)

    def test_strategy_exception_assumes_compliant(self, monkeypatch):
        """Test that a crashing strategy marks its group compliant."""
        def explode(item, fix, ctx):
            raise RuntimeError("parser crashed")

        monkeypatch.setitem(FIX_STRATEGIES, IssueType.POOR_TITLE_TAG, explode)
        outcome = self.run([make_fix("poor_title_tag")])

        assert outcome.fixes[0].success
        assert "assumed compliant" in outcome.fixes[0].description

    def test_scan_limit_respected(self):
        """Test that only the scan window is updated."""
        posts = [make_item(i, "T", '<img src="/a/dog.jpg">') for i in range(1, 16)]
        platform = FakeContentPlatform(posts=posts)
        self.run([make_fix("missing_alt_text")], platform)

        assert len(platform.updates) == 10


class TestSummarizeOutcomes:
    """Tests for collapsing per-item outcomes."""

    def test_one_fix_per_request(self):
        """Test that per-item outcomes collapse to one fix per issue."""
        requested = [make_fix("missing_alt_text", "a")]
        recorded = [
            requested[0].model_copy(update={"success": True, "description": "item 1", "content_id": 1}),
            requested[0].model_copy(update={"success": False, "description": "item 2", "error": "boom"}),
        ]
        summary = summarize_outcomes(requested, recorded)

        assert len(summary) == 1
        assert summary[0].success is False
        assert summary[0].error == "boom"
