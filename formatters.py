"""
German display formatting for prices, mileage, dates and account numbers.
"""
import re
from datetime import date, datetime
from typing import Dict, Optional, Union

from dateutil import parser as date_parser

from config import VAT_RATE


DateLike = Union[date, datetime, str, None]


def _german_number(value: float, decimals: int) -> str:
    """Format with '.' as thousands separator and ',' as decimal mark."""
    text = f"{value:,.{decimals}f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _to_date(value: DateLike) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.parse(str(value)).date()


def format_amount(amount: Optional[float]) -> str:
    """1234.5 -> '1.234,50' (no currency symbol)."""
    return _german_number(float(amount or 0), 2)


def format_price(amount: Optional[float]) -> str:
    """1234.5 -> '1.234,50 €'."""
    if amount is None:
        return "0,00 €"
    return f"{format_amount(amount)} €"


def format_kilometer(km: Optional[float]) -> str:
    """150000 -> '150.000'. Up to three fraction digits are kept."""
    if km is None:
        return "0"
    km = float(km)
    if km.is_integer():
        return _german_number(km, 0)
    return _german_number(km, 3).rstrip("0").rstrip(",")


def format_erstzulassung(value: DateLike, short_year: bool = False) -> str:
    """
    Format a first-registration date as month/year.

    The admin tables show 'MM/YYYY'; Docmosis documents use 'MM/YY'.
    Values that cannot be parsed are returned as given.
    """
    try:
        parsed = _to_date(value)
    except (ValueError, OverflowError):
        return str(value)
    if parsed is None:
        return ""
    year = f"{parsed.year % 100:02d}" if short_year else str(parsed.year)
    return f"{parsed.month:02d}/{year}"


def format_german_date(value: DateLike = None) -> str:
    """Format as 'DD.MM.YYYY'. Defaults to today."""
    parsed = _to_date(value) or date.today()
    return parsed.strftime("%d.%m.%Y")


def format_iban(iban: Optional[str]) -> str:
    """'de89370400440532013000' -> 'DE89 3704 0044 0532 0130 00'."""
    if not iban:
        return ""
    cleaned = re.sub(r"\s", "", iban).upper()
    return " ".join(cleaned[i:i + 4] for i in range(0, len(cleaned), 4))


def format_invoice_number(number: int) -> str:
    return str(number).zfill(6)


def calculate_prices(nettopreis: float) -> Dict[str, float]:
    """
    Gross price and VAT for a net price.

    VAT is the difference between gross and net, not a separate
    percentage of net, so the three values always add up.
    """
    bruttopreis = nettopreis * (1 + VAT_RATE)
    return {
        "nettopreis": nettopreis,
        "bruttopreis": bruttopreis,
        "mwst": bruttopreis - nettopreis,
    }


def parse_formatted_number(value: Optional[str]) -> Optional[float]:
    """
    Parse user input such as '12.500,50 €', '12500.5' or '150 km'.

    A comma is treated as the decimal mark; dots before it are thousands
    separators. Returns None for empty or unparseable input.
    """
    if not value or not value.strip():
        return None
    cleaned = re.sub(r"[^\d,.-]", "", value)
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".", 1)
    try:
        return float(cleaned)
    except ValueError:
        return None


def sanitize_filename(name: Optional[str]) -> str:
    return re.sub(r'[<>:"/\\|?*]', "_", name or "").strip()


_UMLAUTS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})


def slugify(text: str) -> str:
    """'Rechnung Übersicht 2024' -> 'rechnung-uebersicht-2024'."""
    slug = text.lower().translate(_UMLAUTS)
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    return slug.strip("-")
