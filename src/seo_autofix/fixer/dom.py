"""HTML fragment inspection and mutation.

Content bodies fetched from the platform are fragments, not documents. They
are parsed with ``html.parser`` (which never adds ``<html>``/``<body>``
wrappers) and serialized back as fragments. Full documents returned by a
text generator are unwrapped with lxml.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup, Tag

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
MAX_ALT_TEXT_LENGTH = 100

# Commentary some models append to rewritten content; matches stay inside one text run
_META_COMMENTARY_PATTERNS = [
    re.compile(r"in this optimized version", re.IGNORECASE),
    re.compile(r"i've integrated[^<.]*?keywords", re.IGNORECASE),
    re.compile(r"keywords naturally throughout", re.IGNORECASE),
    re.compile(r"ensuring[^<.]*?readability[^<.]*?structure", re.IGNORECASE),
]

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")


def parse_fragment(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def serialize_fragment(soup: BeautifulSoup) -> str:
    """Serialize without introducing document-wrapper elements."""
    if soup.body is not None:
        return soup.body.decode_contents()
    return soup.decode_contents()


def _container(soup: BeautifulSoup) -> Tag:
    return soup.body if soup.body is not None else soup


def extract_text(html: str) -> str:
    """Visible text of an HTML fragment, whitespace collapsed."""
    text = BeautifulSoup(html or "", "html.parser").get_text(" ")
    return re.sub(r"\s+", " ", text).strip()


def is_full_document(html: str) -> bool:
    lowered = html.lower()
    return "<!doctype" in lowered or "<html" in lowered


def extract_content_only(html: str) -> str:
    """Strip ``<html>``/``<head>``/``<body>`` wrappers from a full document."""
    if not is_full_document(html):
        return html
    soup = BeautifulSoup(html, "lxml")
    if soup.body is not None:
        content = soup.body.decode_contents().strip()
        if content:
            return content
    parts = [
        str(el) for el in soup.find_all(recursive=False)
        if isinstance(el, Tag) and el.name not in ("html", "head")
    ]
    return "".join(parts) or html


def clean_and_validate_content(content: str) -> str:
    """Remove model commentary and document wrappers from generated content."""
    cleaned = content
    for pattern in _META_COMMENTARY_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return extract_content_only(cleaned)


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def fallback_alt_text(src: str) -> str:
    """Derive alt text from an image filename.

    ``/uploads/cat-photo.jpg`` becomes ``cat photo``.
    """
    path = src.split("?", 1)[0].split("#", 1)[0]
    filename = path.rstrip("/").split("/")[-1]
    filename = re.sub(r"\.[^/.]+$", "", filename)
    alt = re.sub(r"[-_]+", " ", filename).strip()
    return alt[:MAX_ALT_TEXT_LENGTH]


def images_missing_alt(soup: BeautifulSoup) -> list[Tag]:
    return [img for img in soup.find_all("img") if not (img.get("alt") or "").strip()]


def add_missing_alt_text(html: str) -> tuple[str, int]:
    """Fill in alt text for images that lack it.

    Inline ``data:`` images and images whose filename yields no text are
    left alone.

    Returns:
        The serialized fragment and the number of images changed
    """
    soup = parse_fragment(html)
    changed = 0
    for img in images_missing_alt(soup):
        src = (img.get("src") or "").strip()
        if not src or src.startswith("data:"):
            continue
        alt = fallback_alt_text(src)
        if not alt:
            continue
        img["alt"] = alt
        changed += 1
    if not changed:
        return html, 0
    return serialize_fragment(soup), changed


# ---------------------------------------------------------------------------
# Headings
# ---------------------------------------------------------------------------


def heading_levels(soup: BeautifulSoup) -> list[int]:
    return [int(h.name[1]) for h in soup.find_all(HEADING_TAGS)]


def find_skipped_heading_level(soup: BeautifulSoup) -> Optional[tuple[int, int]]:
    """First pair of consecutive headings that skips a level, e.g. (2, 4)."""
    levels = heading_levels(soup)
    for previous, current in zip(levels, levels[1:]):
        if current > previous + 1:
            return previous, current
    return None


def normalize_headings(html: str, title: str) -> tuple[str, list[str]]:
    """Ensure the fragment has exactly one H1.

    Extra H1s are demoted to H2 in place. When there is no H1 one is
    prepended using the content title.

    Returns:
        The serialized fragment (unchanged input when nothing changed) and
        the list of changes made
    """
    soup = parse_fragment(html)
    h1s = soup.find_all("h1")
    changes: list[str] = []

    if len(h1s) > 1:
        for h1 in h1s[1:]:
            h1.name = "h2"
        changes.append(f"Converted {len(h1s) - 1} extra H1 to H2")

    if not h1s:
        heading = soup.new_tag("h1")
        heading.string = extract_text(title) or "Page Title"
        _container(soup).insert(0, heading)
        changes.append("Added missing H1")

    if not changes:
        return html, changes
    return serialize_fragment(soup), changes


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_RE.findall(text)] or [text]


def apply_basic_content_improvements(html: str) -> str:
    """Structural readability improvements that need no text generator."""
    soup = parse_fragment(html)

    for p in soup.find_all("p"):
        text = p.get_text()
        if len(text) <= 500:
            continue
        sentences = split_sentences(text)
        if len(sentences) > 3:
            mid = len(sentences) // 2
            first = soup.new_tag("p")
            first.string = " ".join(sentences[:mid])
            second = soup.new_tag("p")
            second.string = " ".join(sentences[mid:])
            p.replace_with(first)
            first.insert_after(second)

    paragraphs = soup.find_all("p")
    if len(paragraphs) > 5 and not soup.find_all(["h2", "h3"]):
        key_points = soup.new_tag("h2")
        key_points.string = "Key Points"
        paragraphs[3].insert_before(key_points)
        if len(paragraphs) > 8:
            more = soup.new_tag("h2")
            more.string = "Additional Information"
            paragraphs[7].insert_before(more)

    for list_tag in soup.find_all(["ul", "ol"]):
        items = list_tag.find_all("li", recursive=False)
        if len(items) > 10:
            second_list = soup.new_tag(list_tag.name)
            for item in items[len(items) // 2:]:
                second_list.append(item.extract())
            list_tag.insert_after(second_list)

    return serialize_fragment(soup)
