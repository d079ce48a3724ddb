"""Keyword extraction and density-based keyword placement."""

import re

from bs4 import NavigableString, Tag

from .dom import extract_text, parse_fragment, serialize_fragment

STOP_WORDS = frozenset(["the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for"])
MIN_DENSITY = 1.0
MAX_DENSITY = 3.0
MAX_KEYWORDS = 3

_INTROS = [
    "When it comes to {keyword}, {text}",
    "{text} This is especially true for {keyword}.",
    "Understanding {keyword} starts with knowing that {text}",
]


def extract_keywords(title: str) -> list[str]:
    """Top title keywords, stop words and words shorter than 3 letters removed."""
    words = re.findall(r"[a-z0-9']+", extract_text(title).lower())
    keywords: list[str] = []
    for word in words:
        if len(word) > 2 and word not in STOP_WORDS and word not in keywords:
            keywords.append(word)
    return keywords[:MAX_KEYWORDS]


def _keyword_re(keyword: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)


def keyword_density(text: str, keywords: list[str]) -> float:
    """Occurrences of any of ``keywords`` per hundred words of ``text``."""
    words = text.split()
    if not words:
        return 0.0
    hits = sum(len(_keyword_re(keyword).findall(text)) for keyword in keywords)
    return hits / len(words) * 100


def _mentions_any(text: str, keywords: list[str]) -> bool:
    return any(_keyword_re(keyword).search(text) for keyword in keywords)


def _lower_first(text: str) -> str:
    return text[:1].lower() + text[1:] if text else text


def _natural_intro(paragraph: Tag, keyword: str) -> None:
    children = list(paragraph.children)
    if len(children) == 1 and isinstance(children[0], NavigableString):
        text = str(children[0]).strip()
        template = _INTROS[len(text) % len(_INTROS)]
        if template.startswith("{text}"):
            rewritten = template.format(keyword=keyword, text=text)
        else:
            rewritten = template.format(keyword=keyword, text=_lower_first(text))
        children[0].replace_with(rewritten)
    else:
        paragraph.append(f" This relates directly to {keyword}.")


def optimize_keywords(html: str, title: str) -> tuple[str, list[str]]:
    """Place title keywords when their combined density is outside 1-3%.

    Density counts every extracted title keyword. A paragraph already
    mentioning any of them is left alone. The primary keyword goes into the
    first paragraph; when density is under 1% and there are more than three
    paragraphs, the secondary keyword (or the primary one, for single-keyword
    titles) also goes into a middle paragraph.

    Returns:
        The serialized fragment (unchanged input when nothing changed) and
        the list of changes made
    """
    keywords = extract_keywords(title)
    if not keywords:
        return html, []

    density = keyword_density(extract_text(html), keywords)
    if MIN_DENSITY <= density <= MAX_DENSITY:
        return html, []

    soup = parse_fragment(html)
    paragraphs = soup.find_all("p")
    if not paragraphs:
        return html, []

    changes: list[str] = []

    if not _mentions_any(paragraphs[0].get_text(), keywords):
        _natural_intro(paragraphs[0], keywords[0])
        changes.append(f"Added '{keywords[0]}' to the opening paragraph")

    if density < MIN_DENSITY and len(paragraphs) > 3:
        middle = paragraphs[len(paragraphs) // 2]
        secondary = keywords[1] if len(keywords) > 1 else keywords[0]
        if not _mentions_any(middle.get_text(), keywords):
            middle.append(f" This connects to {secondary} in important ways.")
            changes.append(f"Added '{secondary}' to a middle paragraph")

    if not changes:
        return html, []
    return serialize_fragment(soup), changes

