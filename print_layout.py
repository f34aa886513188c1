"""
Print Layout

Prepares substituted template HTML for the HTML-to-PDF step:
- drops position:fixed footers (they do not survive the PDF conversion)
- appends print CSS
- wraps the .pdf-content container in a page with an in-flow footer
- fills {{ AKTUELLES_DATUM }}
"""
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from bs4 import BeautifulSoup, Tag
from jinja2 import DictLoader, Environment

from formatters import format_german_date

logger = logging.getLogger(__name__)


PRINT_CSS = """
@media print {
  body {
    margin: 0;
    padding: 0;
    font-family: Arial, sans-serif;
    font-size: 12px;
    line-height: 1.4;
    color: #000;
  }

  .pdf-page {
    page-break-after: always;
    min-height: 100vh;
    position: relative;
    padding-bottom: 60px;
  }

  .pdf-page:last-child {
    page-break-after: auto;
  }

  .pdf-page-footer {
    position: absolute;
    bottom: 0;
    left: 0;
    right: 0;
    text-align: center;
    font-size: {{ footer_font_size }}px;
    color: #666;
    border-top: 1px solid #ddd;
    padding-top: 10px;
    background: white;
    margin-top: 20px;
  }

  .page-break-before { page-break-before: always; }
  .page-break-after { page-break-after: always; }
  .page-break-inside-avoid { page-break-inside: avoid; }

  table {
    border-collapse: collapse;
    width: 100%;
    margin: 10px 0;
  }

  th, td {
    border: 1px solid #ddd;
    padding: 8px;
    text-align: left;
  }

  th {
    background-color: #f5f5f5;
    font-weight: bold;
  }

  p, div {
    orphans: 3;
    widows: 3;
  }

  img {
    max-width: 100%;
    height: auto;
  }
}
"""

DEFAULT_FOOTER = """
<div style="text-align: center; font-size: 10px; color: #666; border-top: 1px solid #ddd; padding-top: 10px; margin-top: 20px;">
  Erstellt am {{ '{{' }} AKTUELLES_DATUM {{ '}}' }}
</div>
"""

PAGE = """<div class="pdf-page">{{ content }}<div class="pdf-page-footer">{{ footer }}</div></div>"""

DOCUMENT = """<!DOCTYPE html>
<html>
<head>
<style>{{ css }}</style>
</head>
<body>
{{ body }}
</body>
</html>
"""

_env = Environment(
    loader=DictLoader({
        "print.css": PRINT_CSS,
        "footer.html": DEFAULT_FOOTER,
        "page.html": PAGE,
        "document.html": DOCUMENT,
    }),
    autoescape=False,
)

DATE_TOKEN_PATTERN = re.compile(r"\{\{\s*AKTUELLES_DATUM\s*\}\}")
FIXED_POSITION_PATTERN = re.compile(r"position\s*:\s*fixed", re.IGNORECASE)


@dataclass
class ProcessedHTML:
    """Print-ready HTML and its page count."""
    processed_content: str
    page_count: int = 1


def _is_fixed(element: Tag) -> bool:
    return bool(FIXED_POSITION_PATTERN.search(element.get("style", "")))


def _remove_fixed_footers(soup: BeautifulSoup) -> Optional[str]:
    """Drop fixed .pdf-footer elements; return the first footer's inner HTML."""
    footers = soup.select(".pdf-footer")
    first_inner = footers[0].decode_contents() if footers else None
    for footer in footers:
        if _is_fixed(footer):
            footer.decompose()
    return first_inner


def _add_print_css(soup: BeautifulSoup, css: str) -> str:
    style = soup.find("style")
    if style is not None:
        style.append(css)
        return str(soup)

    new_style = soup.new_tag("style")
    new_style.string = css
    if soup.head is not None:
        soup.head.append(new_style)
        return str(soup)
    if soup.html is not None:
        head = soup.new_tag("head")
        head.append(new_style)
        soup.html.insert(0, head)
        return str(soup)
    return _env.get_template("document.html").render(css=css, body=str(soup))


def _wrap_content(soup: BeautifulSoup, footer: str):
    container = soup.select_one(".pdf-content")
    if container is None:
        return
    page = _env.get_template("page.html").render(content=container.decode_contents(), footer=footer)
    container.clear()
    container.append(BeautifulSoup(page, "html.parser"))


def process_html_with_footers(
    content: str,
    footer_content: Optional[str] = None,
    today: Optional[date] = None,
    footer_font_size: int = 10,
) -> ProcessedHTML:
    """
    Convert template HTML into print layout.

    Args:
        content: Substituted template HTML
        footer_content: Footer HTML; defaults to the first existing
            .pdf-footer, then to an "Erstellt am" line
        today: Date used for {{ AKTUELLES_DATUM }}

    Returns:
        ProcessedHTML with the print-ready markup
    """
    soup = BeautifulSoup(content, "html.parser")
    existing_footer = _remove_fixed_footers(soup)

    footer = footer_content or existing_footer
    if not footer:
        footer = _env.get_template("footer.html").render()

    _wrap_content(soup, footer)
    css = _env.get_template("print.css").render(footer_font_size=footer_font_size)
    html = _add_print_css(soup, css)

    html = DATE_TOKEN_PATTERN.sub(format_german_date(today or date.today()), html)
    logger.debug("Processed HTML for print (%d chars)", len(html))

    return ProcessedHTML(processed_content=html, page_count=1)
