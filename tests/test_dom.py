"""Tests for HTML fragment helpers."""

from seo_autofix.fixer.dom import (
    add_missing_alt_text,
    apply_basic_content_improvements,
    clean_and_validate_content,
    extract_content_only,
    extract_text,
    fallback_alt_text,
    find_skipped_heading_level,
    normalize_headings,
    parse_fragment,
)


class TestAltText:
    """Tests for alt text derivation and insertion."""

    def test_alt_from_filename(self):
        """Test alt text derived from the image filename."""
        html, changed = add_missing_alt_text('<img src="/uploads/cat-photo.jpg">')
        assert changed == 1
        assert 'alt="cat photo"' in html

    def test_fallback_alt_text_strips_query_and_separators(self):
        """Test that query strings and separators are removed."""
        assert fallback_alt_text("https://cdn.example.com/img/My_Photo-2.PNG?w=300") == "My Photo 2"

    def test_fallback_alt_text_truncated(self):
        """Test that derived alt text is capped at 100 characters."""
        assert len(fallback_alt_text("/" + "a-" * 120 + ".jpg")) <= 100

    def test_data_uri_skipped(self):
        """Test that data URI images are skipped."""
        original = '<img src="data:image/png;base64,AAAA">'
        html, changed = add_missing_alt_text(original)
        assert changed == 0
        assert html == original

    def test_existing_alt_kept(self):
        """Test that existing alt text is kept."""
        original = '<p><img src="/a/dog.jpg" alt="A dog"></p>'
        html, changed = add_missing_alt_text(original)
        assert changed == 0
        assert html == original

    def test_empty_alt_filled(self):
        """Test that blank alt text is filled."""
        html, changed = add_missing_alt_text('<img src="/a/dog.jpg" alt="  ">')
        assert changed == 1
        assert 'alt="dog"' in html

    def test_no_document_wrappers_added(self):
        """Test that serialized fragments gain no document wrappers."""
        html, _ = add_missing_alt_text('<p>Hi</p><img src="/x/sunset.jpg">')
        assert "<html" not in html
        assert "<body" not in html
        assert html.startswith("<p>Hi</p>")


class TestHeadings:
    """Tests for heading normalization."""

    def test_extra_h1_demoted_in_place(self):
        """Test that extra H1 tags become H2 in place."""
        html, changes = normalize_headings("<h1>A</h1><p>x</p><h1>B</h1>", "Title")
        assert html == "<h1>A</h1><p>x</p><h2>B</h2>"
        assert changes == ["Converted 1 extra H1 to H2"]

    def test_demotion_keeps_inner_markup(self):
        """Test that demoted headings keep their inner markup."""
        html, _ = normalize_headings("<h1>A</h1><h1>B <em>c</em></h1>", "Title")
        assert "<h2>B <em>c</em></h2>" in html

    def test_missing_h1_added_from_title(self):
        """Test that a missing H1 is added from the title."""
        html, changes = normalize_headings("<p>Body</p>", "My &amp; Title")
        assert html.startswith("<h1>My &amp; Title</h1>")
        assert "Added missing H1" in changes

    def test_single_h1_unchanged(self):
        """Test that content with one H1 is unchanged."""
        original = "<h1>A</h1><p>x</p><h3>skip</h3>"
        html, changes = normalize_headings(original, "Title")
        assert html == original
        assert changes == []

    def test_skipped_level_detected(self):
        """Test detection of the first skipped heading level."""
        assert find_skipped_heading_level(parse_fragment("<h1>A</h1><h2>B</h2><h4>C</h4>")) == (2, 4)
        assert find_skipped_heading_level(parse_fragment("<h1>A</h1><h2>B</h2><h3>C</h3>")) is None


class TestContentCleaning:
    """Tests for cleaning generated content."""

    def test_extract_content_only_unwraps_document(self):
        """Test that full documents are reduced to their body."""
        doc = "<!DOCTYPE html><html><head><title>x</title></head><body><p>Keep</p></body></html>"
        assert extract_content_only(doc) == "<p>Keep</p>"

    def test_fragment_untouched(self):
        """Test that fragments pass through unchanged."""
        assert extract_content_only("<p>Keep</p>") == "<p>Keep</p>"

    def test_commentary_removed(self):
        """Test that trailing model commentary is removed."""
        cleaned = clean_and_validate_content("<p>Text</p>In this optimized version")
        assert cleaned == "<p>Text</p>"

    def test_commentary_match_stays_inside_text_run(self):
        """Test that cleaning never joins words across tags or sentences."""
        original = "<p>We are ensuring readability for everyone.</p><p>Good structure matters.</p>"
        assert clean_and_validate_content(original) == original

    def test_extract_text(self):
        """Test visible text extraction."""
        assert extract_text("<p>Hello   <b>world</b></p>") == "Hello world"


class TestBasicImprovements:
    """Tests for structural content improvements."""

    def test_long_paragraph_split(self):
        """Test that long paragraphs are split."""
        sentence = "This is a reasonably long sentence about brewing coffee at home. "
        html = f"<p>{sentence * 10}</p>"
        improved = apply_basic_content_improvements(html)
        assert improved.count("<p>") == 2

    def test_subheadings_inserted(self):
        """Test that subheadings are added to long content."""
        html = "".join(f"<p>Paragraph {i}.</p>" for i in range(9))
        improved = apply_basic_content_improvements(html)
        assert "<h2>Key Points</h2>" in improved
        assert "<h2>Additional Information</h2>" in improved

    def test_long_list_split(self):
        """Test that long lists are split."""
        html = "<ul>" + "".join(f"<li>{i}</li>" for i in range(12)) + "</ul>"
        improved = apply_basic_content_improvements(html)
        assert improved.count("<ul>") == 2
