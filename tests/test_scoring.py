"""Tests for score estimation and reanalysis."""

import asyncio
import shutil
import tempfile
from pathlib import Path

from seo_autofix.fixer.run_log import RunLog
from seo_autofix.fixer.scoring import ScoreReanalyzer, estimate_score_improvement
from seo_autofix.models import Fix
from seo_autofix.storage import SQLiteStore

from helpers import StaticScorer, make_website


def successful(fix_type: str, impact: str) -> Fix:
    return Fix(type=fix_type, description=fix_type, impact=impact, success=True)


class TestEstimateScoreImprovement:
    """Tests for the weighted improvement estimate."""

    def test_weighted_sum(self):
        """Test the weighted improvement estimate."""
        fixes = [successful("missing_meta_description", "high"), successful("poor_title_tag", "medium")]
        assert estimate_score_improvement(fixes) == 8.5

    def test_failed_fixes_ignored(self):
        """Test that failed fixes add nothing."""
        failed = Fix(type="poor_title_tag", description="x", impact="high", success=False)
        assert estimate_score_improvement([failed]) == 0.0

    def test_canonical_and_default_weights(self):
        """Test weights for aliases and unknown types."""
        assert estimate_score_improvement([successful("missing_h1_tag", "high")]) == 3.5
        assert estimate_score_improvement([successful("poor_content_structure", "low")]) == 0.8

    def test_capped(self):
        """Test that the estimate is capped."""
        fixes = [successful("missing_meta_description", "high") for _ in range(20)]
        assert estimate_score_improvement(fixes) == 40.0


class TestScoreReanalyzer:
    """Tests for ScoreReanalyzer."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.store = SQLiteStore(Path(self.temp_dir) / "test.db")
        self.website = make_website()
        self.store.create_website(self.website)
        self.store.create_seo_report("site-1", 60.0)
        self.log = RunLog()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def test_simulate_does_not_score(self):
        """Test that simulation never calls the scorer."""
        scorer = StaticScorer(value=99.0)
        result = ScoreReanalyzer(self.store, scorer).simulate(
            self.website, [successful("missing_meta_description", "high")]
        )

        assert result.simulated
        assert result.initial_score == 60.0
        assert result.final_score == 65.0
        assert scorer.calls == 0
        assert len(self.store.get_seo_reports_by_website("site-1")) == 1

    def test_simulate_caps_at_100(self):
        """Test that simulated scores stay at or under 100."""
        self.store.create_seo_report("site-1", 98.0)
        result = ScoreReanalyzer(self.store, StaticScorer()).simulate(
            self.website, [successful("missing_meta_description", "high")]
        )
        assert result.final_score == 100.0

    def test_reanalyze_persists_score(self):
        """Test that reanalysis stores a new report."""
        reanalyzer = ScoreReanalyzer(self.store, StaticScorer(value=72.5))

        result = asyncio.run(reanalyzer.reanalyze(self.website, 0, self.log))

        assert result.success
        assert result.initial_score == 60.0
        assert result.final_score == 72.5
        assert result.score_improvement == 12.5
        assert self.store.get_seo_reports_by_website("site-1")[0].score == 72.5
        assert self.store.get_website("site-1").seo_score == 72.5

    def test_reanalyze_failure_reported(self):
        """Test that a scorer failure is reported."""
        reanalyzer = ScoreReanalyzer(self.store, StaticScorer(error=ValueError("no content")))

        result = asyncio.run(reanalyzer.reanalyze(self.website, 0, self.log))

        assert result.success is False
        assert result.error == "no content"
        assert len(self.store.get_seo_reports_by_website("site-1")) == 1
        assert any("Reanalysis failed" in w for w in self.log.warnings)
