"""SEO auto-fix engine: remediates tracked SEO issues on a content platform."""

__version__ = "0.1.0"
