"""Remediation of tracked SEO issues on a remote content platform.

This module handles:
- Reading and updating posts and pages through the content platform API
- Text generation with provider fallback for copywriting fixes
- Fix strategies that mutate content (alt text, meta, titles, headings,
  content quality, keywords)
- Reconciling fix outcomes onto tracked issue statuses

The orchestrator lives in ``seo_autofix.fixer.orchestrator``.
"""

from .content_client import ContentClient, ContentClientError, ContentConnectionError
from .run_log import RunLog
from .strategies import FIX_STRATEGIES, OptimisticConvergence, StrategyMissing, apply_fixes
from .text_generation import AnthropicProvider, OpenAIProvider, TextGenerationError, TextGenerator

__all__ = [
    "AnthropicProvider",
    "ContentClient",
    "ContentClientError",
    "ContentConnectionError",
    "FIX_STRATEGIES",
    "OpenAIProvider",
    "OptimisticConvergence",
    "RunLog",
    "StrategyMissing",
    "TextGenerationError",
    "TextGenerator",
    "apply_fixes",
]
