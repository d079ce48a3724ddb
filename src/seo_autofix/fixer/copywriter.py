"""LLM-backed copywriting used by the fix strategies.

Generates meta descriptions and titles, scores content quality and rewrites
low-quality content. Every operation has a deterministic fallback used when
no provider is available or generation fails, so a strategy never fails just
because the text generator did.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from .dom import (
    apply_basic_content_improvements,
    clean_and_validate_content,
    extract_text,
    split_sentences,
)
from .run_log import RunLog
from .text_generation import TextGenerationError, TextGenerator, clean_ai_response, extract_json

META_MIN_LENGTH = 120
META_MAX_LENGTH = 160
TITLE_MIN_LENGTH = 30
TITLE_MAX_LENGTH = 60
QUALITY_THRESHOLD = 75

_META_CLOSERS = [
    "Read the full article to learn more about {title}.",
    "Find practical tips, clear explanations and useful examples inside.",
    "Updated regularly with the latest guidance and best practices.",
]

_HUMANIZE_REPLACEMENTS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"Furthermore,"), "Also,"),
    (re.compile(r"Moreover,"), "Plus,"),
    (re.compile(r"Nevertheless,"), "Still,"),
    (re.compile(r"Consequently,"), "So,"),
    (re.compile(r"In conclusion,", re.IGNORECASE), "To sum up,"),
    (re.compile(r"It is important to note that", re.IGNORECASE), "Keep in mind that"),
    (re.compile(r"It should be noted that", re.IGNORECASE), "Note that"),
    (re.compile(r"In today's digital age,?\s*", re.IGNORECASE), ""),
    (re.compile(r"In the modern era,?\s*", re.IGNORECASE), ""),
    (re.compile(r"It's worth mentioning that\s*", re.IGNORECASE), ""),
    (re.compile(r"It goes without saying that\s*", re.IGNORECASE), ""),
    (re.compile(r"\bit is\b"), "it's"),
    (re.compile(r"\byou are\b"), "you're"),
    (re.compile(r"\bwe are\b"), "we're"),
    (re.compile(r"\bthey are\b"), "they're"),
    (re.compile(r"\bcannot\b"), "can't"),
    (re.compile(r"\bwill not\b"), "won't"),
    (re.compile(r"\bdo not\b"), "don't"),
]

META_SYSTEM_PROMPT = """You are a skilled copywriter creating compelling meta descriptions.

RULES FOR NATURAL META DESCRIPTIONS:
- Write as if you're telling a friend what the page is about
- Use natural, conversational language
- Include a subtle call-to-action without being pushy
- Avoid marketing cliches and buzzwords
- 120-160 characters
- Don't use quotation marks
- Return ONLY the meta description text"""

TITLE_SYSTEM_PROMPT = """You are a content editor optimizing page titles for both SEO and human readers.

GUIDELINES:
- Make it naturally compelling, not keyword-stuffed
- Be specific and clear about the value
- Avoid clickbait
- 30-60 characters
- Maintain the original tone
- Return ONLY the optimized title"""

QUALITY_SYSTEM_PROMPT = """You are a content quality analyst evaluating readability and engagement.

Return ONLY JSON with this structure:
{
  "score": 0-100,
  "issues": ["specific problems"],
  "improvements": ["specific improvements"],
  "readabilityScore": 0-100,
  "keywordDensity": {"keyword": percentage}
}"""

REWRITE_SYSTEM_PROMPT = """You are an expert content writer who creates natural, engaging content.

- Write in a conversational, natural tone
- Vary sentence structure and length
- Maintain the original author's voice and the HTML structure
- Avoid phrases like "In today's digital age" or "In conclusion"

Return ONLY the improved HTML content without any commentary."""


@dataclass
class ContentAnalysis:
    """Quality assessment of a piece of content."""
    score: float
    issues: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    readability_score: float = 0.0
    keyword_density: dict[str, float] = field(default_factory=dict)


def truncate_with_ellipsis(text: str, max_length: int, min_length: int = 0) -> str:
    """Cut ``text`` to at most ``max_length`` characters ending in '...'.

    Prefers a word boundary as long as the result stays at least
    ``min_length`` long.
    """
    if len(text) <= max_length:
        return text
    limit = max_length - 3
    head = text[:limit]
    at_word = head.rsplit(" ", 1)[0].rstrip(" ,.;:-")
    if len(at_word) + 3 >= min_length and at_word:
        head = at_word
    return head + "..."


def fit_meta_description(candidate: str, title: str, content_text: str) -> str:
    """Bring a meta description into the 120-160 character window."""
    description = re.sub(r"\s+", " ", candidate).strip()
    if len(description) < META_MIN_LENGTH:
        extras = [s for s in split_sentences(content_text) if s and s not in description]
        extras += [closer.format(title=title or "this topic") for closer in _META_CLOSERS]
        for extra in extras:
            if len(description) >= META_MIN_LENGTH:
                break
            description = f"{description} {extra}".strip()
    return truncate_with_ellipsis(description, META_MAX_LENGTH, META_MIN_LENGTH)


def fallback_meta_description(title: str, content_text: str) -> str:
    return fit_meta_description(f"{title}. {content_text[:100]}", title, content_text)


def fallback_analysis(content: str) -> ContentAnalysis:
    """Heuristic quality score from word and sentence counts."""
    text = extract_text(content)
    words = len(text.split())
    sentences = max(1, len([s for s in re.split(r"[.!?]+", text) if s.strip()]))
    avg_words = words / sentences

    issues = []
    improvements = []
    if words < 300:
        issues.append("Content is too short")
        improvements.append("Expand content to 500+ words")
    if avg_words > 25:
        issues.append("Sentences are too long")
        improvements.append("Shorten sentences for readability")

    return ContentAnalysis(
        score=max(20, 100 - len(issues) * 15),
        issues=issues,
        improvements=improvements,
        readability_score=max(0.0, 100 - (avg_words - 15) * 3),
    )


def humanize_content(content: str) -> str:
    """Replace stock phrasing typical of generated text."""
    for pattern, replacement in _HUMANIZE_REPLACEMENTS:
        content = pattern.sub(replacement, content)
    return content


class Copywriter:
    """Text-producing helpers bound to one run's generator and log."""

    def __init__(self, generator: Optional[TextGenerator], log: RunLog):
        self.generator = generator
        self.log = log

    def _can_generate(self) -> bool:
        return self.generator is not None and self.generator.is_available()

    def _generate(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float) -> str:
        return clean_ai_response(
            self.generator.generate(system_prompt, user_prompt, max_tokens, temperature)
        )

    def generate_meta_description(self, title: str, content: str) -> str:
        content_text = extract_text(content)
        if not self._can_generate():
            return fallback_meta_description(title, content_text)

        user_prompt = (
            "Create a natural, engaging meta description for:\n"
            f"Title: {title}\n"
            f"Content preview: {content_text[:300]}"
        )
        try:
            generated = self._generate(META_SYSTEM_PROMPT, user_prompt, 100, 0.5)
        except TextGenerationError as e:
            self.log.warning(f"Meta description generation failed, using fallback: {e}")
            return fallback_meta_description(title, content_text)
        if not generated:
            return fallback_meta_description(title, content_text)
        return fit_meta_description(generated, title, content_text)

    def optimize_title(self, current_title: str, content: str) -> str:
        fallback = truncate_with_ellipsis(current_title, TITLE_MAX_LENGTH, TITLE_MIN_LENGTH)
        if not self._can_generate():
            return fallback

        user_prompt = (
            "Improve this title to be more engaging and natural:\n"
            f'Current: "{current_title}"\n'
            f"Content context: {extract_text(content)[:200]}"
        )
        try:
            optimized = self._generate(TITLE_SYSTEM_PROMPT, user_prompt, 50, 0.5)
        except TextGenerationError as e:
            self.log.warning(f"Title optimization failed, keeping current title: {e}")
            return fallback
        if not optimized:
            return fallback
        return truncate_with_ellipsis(optimized, TITLE_MAX_LENGTH, TITLE_MIN_LENGTH)

    def analyze_content_quality(self, content: str, title: str) -> ContentAnalysis:
        if not self._can_generate():
            return fallback_analysis(content)

        user_prompt = (
            "Analyze this content for readability and engagement:\n"
            f'Title: "{title}"\n'
            f'Content: "{extract_text(content)[:1000]}"'
        )
        try:
            data = extract_json(self._generate(QUALITY_SYSTEM_PROMPT, user_prompt, 500, 0.3))
        except TextGenerationError as e:
            self.log.warning(f"Content analysis failed, using heuristic score: {e}")
            return fallback_analysis(content)
        if not data or "score" not in data:
            return fallback_analysis(content)

        try:
            return ContentAnalysis(
                score=float(data["score"]),
                issues=list(data.get("issues") or []),
                improvements=list(data.get("improvements") or []),
                readability_score=float(data.get("readabilityScore") or 0),
                keyword_density=dict(data.get("keywordDensity") or {}),
            )
        except (TypeError, ValueError):
            return fallback_analysis(content)

    def improve_content(self, content: str, title: str, improvements: list[str]) -> str:
        if not self._can_generate():
            return apply_basic_content_improvements(content)

        user_prompt = (
            f"Title: {title}\n\n"
            f"Current Content:\n{content[:3000]}\n\n"
            f"Improvements needed:\n" + "\n".join(improvements) + "\n\n"
            "Rewrite this content to be more natural and engaging while keeping the HTML structure."
        )
        try:
            improved = self._generate(REWRITE_SYSTEM_PROMPT, user_prompt, 2000, 0.7)
        except TextGenerationError as e:
            self.log.warning(f"Content improvement failed, applying basic improvements: {e}")
            return apply_basic_content_improvements(content)
        if not improved:
            return apply_basic_content_improvements(content)
        return clean_and_validate_content(humanize_content(improved))
