"""
Tests for print layout conversion.
"""
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from print_layout import ProcessedHTML, process_html_with_footers


TODAY = date(2024, 3, 5)

TEMPLATE = """<html>
<head><style>body { color: red; }</style></head>
<body>
<div class="pdf-content"><p>Inhalt</p><div class="box">verschachtelt</div></div>
<div class="pdf-footer" style="position: fixed; bottom: 0;">Kanzlei Müller · Berlin</div>
</body>
</html>"""


class TestProcessHtmlWithFooters:

    def test_returns_processed_html(self):
        result = process_html_with_footers(TEMPLATE, today=TODAY)
        assert isinstance(result, ProcessedHTML)
        assert result.page_count == 1

    def test_fixed_footer_moved_into_page(self):
        html = process_html_with_footers(TEMPLATE, today=TODAY).processed_content

        assert 'class="pdf-footer"' not in html
        assert '<div class="pdf-page-footer">Kanzlei Müller · Berlin</div>' in html

    def test_content_wrapped_in_page(self):
        html = process_html_with_footers(TEMPLATE, today=TODAY).processed_content

        assert (
            '<div class="pdf-content"><div class="pdf-page"><p>Inhalt</p>'
            '<div class="box">verschachtelt</div><div class="pdf-page-footer">'
        ) in html

    def test_print_css_appended_to_existing_style(self):
        html = process_html_with_footers(TEMPLATE, today=TODAY).processed_content

        assert html.count("<style>") == 1
        assert "body { color: red; }" in html
        assert "@media print" in html
        assert "font-size: 10px;" in html

    def test_footer_font_size(self):
        html = process_html_with_footers(TEMPLATE, today=TODAY, footer_font_size=8).processed_content
        assert "font-size: 8px;" in html

    def test_explicit_footer_wins(self):
        html = process_html_with_footers(TEMPLATE, footer_content="Seite X", today=TODAY).processed_content
        assert '<div class="pdf-page-footer">Seite X</div>' in html
        assert "Kanzlei Müller · Berlin" not in html

    def test_default_footer_with_date(self):
        content = '<html><head></head><body><div class="pdf-content">Text</div></body></html>'
        html = process_html_with_footers(content, today=TODAY).processed_content

        assert "Erstellt am 05.03.2024" in html
        assert "AKTUELLES_DATUM" not in html

    def test_date_token_replaced_in_body(self):
        content = '<div class="pdf-content">Berlin, {{ AKTUELLES_DATUM }} / {{AKTUELLES_DATUM}}</div>'
        html = process_html_with_footers(content, today=TODAY).processed_content
        assert "Berlin, 05.03.2024 / 05.03.2024" in html

    def test_css_inserted_before_head_close(self):
        content = '<html><head><title>T</title></head><body>x</body></html>'
        html = process_html_with_footers(content, today=TODAY).processed_content
        assert html.index("@media print") < html.index("</head>")

    def test_head_created_when_missing(self):
        content = '<html><body>x</body></html>'
        html = process_html_with_footers(content, today=TODAY).processed_content
        assert html.startswith("<html><head><style>")

    def test_fragment_wrapped_in_document(self):
        html = process_html_with_footers("<p>Nur ein Absatz</p>", today=TODAY).processed_content

        assert html.startswith("<!DOCTYPE html>")
        assert "<body>\n<p>Nur ein Absatz</p>\n</body>" in html

    def test_without_content_container_no_page_wrapper(self):
        html = process_html_with_footers("<p>x</p>", today=TODAY).processed_content
        assert '<div class="pdf-page">' not in html

    def test_non_fixed_footer_kept_in_place(self):
        content = (
            '<div class="pdf-content">Text</div>'
            '<div class="pdf-footer">Statisch</div>'
        )
        html = process_html_with_footers(content, today=TODAY).processed_content

        assert '<div class="pdf-footer">Statisch</div>' in html
        assert '<div class="pdf-page-footer">Statisch</div>' in html


class TestClassMatching:
    """Only whole class tokens select footers and content containers."""

    def test_similar_footer_class_kept(self):
        content = (
            '<div class="pdf-content">Body</div>'
            '<div class="pdf-footer-note" style="position: fixed">Nur ein Hinweis</div>'
        )
        html = process_html_with_footers(content, today=TODAY).processed_content

        assert '<div class="pdf-footer-note" style="position: fixed">Nur ein Hinweis</div>' in html
        assert "Erstellt am 05.03.2024" in html

    def test_similar_content_class_not_wrapped(self):
        html = process_html_with_footers('<div class="pdf-content-inner">A</div>', today=TODAY).processed_content

        assert '<div class="pdf-content-inner">A</div>' in html
        assert '<div class="pdf-page">' not in html

    def test_data_class_attribute_ignored(self):
        content = '<div data-class="pdf-footer" style="position: fixed">Bleibt</div>'
        html = process_html_with_footers(content, today=TODAY).processed_content

        assert "Bleibt" in html

    def test_footer_among_several_classes(self):
        content = (
            '<div class="pdf-content">Body</div>'
            '<div class="small pdf-footer" style="POSITION:FIXED">Fuß</div>'
        )
        html = process_html_with_footers(content, today=TODAY).processed_content

        assert 'class="small pdf-footer"' not in html
        assert '<div class="pdf-page-footer">Fuß</div>' in html
