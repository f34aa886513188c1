"""
Template Placeholder Substitution

Replaces {{ namespace.field }} tokens in template HTML with values from the
selected entities. Tokens whose entity was not selected, or whose field is
not one of the known fields below, are left untouched.

    replace_template_data("Hallo {{ kunde.name }}", TemplateData(kunde=kunde))

Values are inserted verbatim (no HTML escaping) and the output is never
re-scanned, so running the substitution again on its own output is a no-op
as long as the inserted values contain no tokens themselves.
"""
import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from entities import TemplateData
from formatters import format_german_date


# {{ current_date }} or {{ namespace.field }}, whitespace inside the braces allowed
TOKEN_PATTERN = re.compile(
    r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)(?:\.([A-Za-z_][A-Za-z0-9_]*))?\s*\}\}"
)

CURRENT_DATE_TOKEN = "current_date"

# Template namespace -> (TemplateData attribute, known fields)
TEMPLATE_FIELDS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "kanzlei": ("kanzlei", (
        "name", "rechtsanwalt", "strasse", "plz", "stadt", "telefon", "email", "website",
    )),
    "unternehmen": ("insolventes_unternehmen", (
        "name", "amtsgericht", "aktenzeichen", "handelsregister", "adresse",
    )),
    "kunde": ("kunde", (
        "name", "kundennummer", "geschaeftsfuehrer", "adresse", "plz", "stadt", "aktenzeichen",
    )),
    "auto": ("auto", (
        "marke", "modell", "fahrgestell_nr", "dekra_bericht_nr", "erstzulassung",
        "kilometer", "einzelpreis_netto",
    )),
    "bankkonto": ("bankkonto", (
        "kontoname", "kontoinhaber", "iban", "bic",
    )),
    "spedition": ("spedition", (
        "name", "strasse", "plz", "stadt",
    )),
}


def _to_text(value: Any) -> str:
    """Render a field value. None is empty; whole floats drop the '.0'."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def replace_template_data(
    html_content: str,
    data: Optional[TemplateData],
    today: Optional[date] = None,
) -> str:
    """
    Substitute all recognized tokens in html_content.

    Args:
        html_content: Template HTML
        data: Selected entities; any of them may be None
        today: Date used for {{ current_date }} (defaults to today)

    Returns:
        The HTML with tokens replaced. Never raises for missing data.
    """
    data = data or TemplateData()
    current_date = format_german_date(today or date.today())

    def _replace(match: re.Match) -> str:
        namespace, field_name = match.group(1), match.group(2)

        if field_name is None:
            return current_date if namespace == CURRENT_DATE_TOKEN else match.group(0)

        known = TEMPLATE_FIELDS.get(namespace)
        if known is None:
            return match.group(0)
        attribute, field_names = known

        entity = getattr(data, attribute)
        if entity is None or field_name not in field_names:
            return match.group(0)

        return _to_text(getattr(entity, field_name, None))

    return TOKEN_PATTERN.sub(_replace, html_content)


def find_tokens(html_content: str) -> List[str]:
    """List the distinct tokens in a template, in order of first appearance."""
    seen = []
    for match in TOKEN_PATTERN.finditer(html_content):
        token = match.group(1) if match.group(2) is None else f"{match.group(1)}.{match.group(2)}"
        if token not in seen:
            seen.append(token)
    return seen


def unresolved_tokens(html_content: str) -> List[str]:
    """Tokens still present after substitution (absent entities, typos)."""
    return [t for t in find_tokens(html_content) if "." in t or t == CURRENT_DATE_TOKEN]
