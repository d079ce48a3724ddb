from .base import BaseAnalyzer, Finding, SiteScorer
from .scorer import ContentScorer
from .seo_analyzer import SEOAnalyzer

__all__ = [
    "BaseAnalyzer",
    "ContentScorer",
    "Finding",
    "SEOAnalyzer",
    "SiteScorer",
]
