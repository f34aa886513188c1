"""
Live preview placeholders for the PDF editor.

The editor preview uses upper-case placeholders ({{KUNDE_NAME}},
{{SUMME_BRUTTO}}, ...) with display-formatted values and a few computed
fields. Placeholders belonging to an entity that was not selected are left
in place.
"""
import random
import re
from datetime import date, timedelta
from typing import Dict, Optional

from config import SKONTO_FACTOR, VAT_RATE
from entities import TemplateData
from formatters import format_amount, format_erstzulassung, format_german_date, format_kilometer


PREVIEW_PATTERN = re.compile(r"\{\{([A-Z][A-Z_]*)\}\}")

_ONES = ["", "eins", "zwei", "drei", "vier", "fünf", "sechs", "sieben", "acht", "neun"]
_TEENS = ["zehn", "elf", "zwölf", "dreizehn", "vierzehn", "fünfzehn", "sechzehn",
          "siebzehn", "achtzehn", "neunzehn"]
_TENS = ["", "", "zwanzig", "dreißig", "vierzig", "fünfzig", "sechzig", "siebzig",
         "achtzig", "neunzig"]


def number_to_words(num: Optional[float]) -> str:
    """
    German words for the integer part of num.

    Only numbers below 1000 are spelled out; larger numbers are returned
    as digits. The AI amount-to-words service handles full amounts.
    """
    integer = int(num or 0)
    if integer == 0:
        return "null"
    if integer >= 1000:
        return str(integer)

    words = ""
    hundreds, rest = divmod(integer, 100)
    if hundreds:
        words += ("ein" if hundreds == 1 else _ONES[hundreds]) + "hundert"
    if rest == 0:
        return words
    if rest < 10:
        return words + _ONES[rest]
    if rest < 20:
        return words + _TEENS[rest - 10]

    tens, ones = divmod(rest, 10)
    if ones:
        unit = "ein" if ones == 1 else _ONES[ones]
        return words + f"{unit}und{_TENS[tens]}"
    return words + _TENS[tens]


def generate_invoice_number() -> str:
    """Preview-only invoice number, e.g. 'IN-004217'."""
    return f"IN-0{random.randint(0, 99999):05d}"


def build_preview_values(
    data: TemplateData,
    today: Optional[date] = None,
    invoice_number: Optional[str] = None,
) -> Dict[str, str]:
    """Map every resolvable preview placeholder to its display value."""
    today = today or date.today()
    invoice_number = invoice_number or generate_invoice_number()
    values: Dict[str, str] = {}

    kanzlei = data.kanzlei
    if kanzlei:
        values.update({
            "KANZLEI_NAME": kanzlei.name or "",
            "KANZLEI_STRASSE": kanzlei.strasse or "",
            "KANZLEI_PLZ": kanzlei.plz or "",
            "KANZLEI_STADT": kanzlei.stadt or "",
            "KANZLEI_TELEFON": kanzlei.telefon or "",
            "KANZLEI_FAX": kanzlei.fax or "",
            "KANZLEI_EMAIL": kanzlei.email or "",
            "KANZLEI_WEBSITE": kanzlei.website or "",
            "KANZLEI_UST_ID": kanzlei.ust_id or "",
            "KANZLEI_REGISTERGERICHT": kanzlei.registergericht or "",
            "KANZLEI_REGISTER_NR": kanzlei.register_nr or "",
            "RECHTSANWALT_NAME": kanzlei.rechtsanwalt or "",
        })

    inso = data.insolventes_unternehmen
    if inso:
        values.update({
            "INSOLVENTES_UNTERNEHMEN_NAME": inso.name or "",
            "INSOLVENTES_UNTERNEHMEN_AMTSGERICHT": inso.amtsgericht or "",
            "INSOLVENTES_UNTERNEHMEN_AKTENZEICHEN": inso.aktenzeichen or "",
            "INSOLVENTES_UNTERNEHMEN_HANDELSREGISTER": inso.handelsregister or "",
            "INSOLVENTES_UNTERNEHMEN_ADRESSE": inso.adresse or "",
        })

    kunde = data.kunde
    if kunde:
        values.update({
            "KUNDE_NAME": kunde.name or "",
            "KUNDE_ADRESSE": kunde.adresse or "",
            "KUNDE_PLZ": kunde.plz or "",
            "KUNDE_STADT": kunde.stadt or "",
            "KUNDE_GESCHAEFTSFUEHRER": kunde.geschaeftsfuehrer or "",
            "LIEFERADRESSE": f"{kunde.adresse or ''}, {kunde.plz or ''} {kunde.stadt or ''}",
        })

    auto = data.auto
    if auto:
        netto = auto.einzelpreis_netto or 0
        brutto = netto * (1 + VAT_RATE)
        values.update({
            "AUTO_MARKE": auto.marke or "",
            "AUTO_MODELL": auto.modell or "",
            "AUTO_FAHRGESTELL": auto.fahrgestell_nr or "",
            "AUTO_DEKRA": auto.dekra_bericht_nr or "",
            "AUTO_ERSTZULASSUNG": format_erstzulassung(auto.erstzulassung),
            "AUTO_KILOMETER": format_kilometer(auto.kilometer or 0),
            "AUTO_PREIS_NETTO": format_amount(netto),
            "SUMME_NETTO": format_amount(netto),
            "SUMME_MWST": format_amount(netto * VAT_RATE),
            "SUMME_BRUTTO": format_amount(brutto),
            "SKONTO_BETRAG": format_amount(brutto * SKONTO_FACTOR),
            "SUMME_NETTO_WORTEN": number_to_words(netto),
        })

    bankkonto = data.bankkonto
    if bankkonto:
        values.update({
            "BANKKONTO_NAME": bankkonto.kontoname or "",
            "BANKKONTO_IBAN": bankkonto.iban or "",
            "BANKKONTO_BIC": bankkonto.bic or "",
        })

    spedition = data.spedition
    if spedition:
        values.update({
            "SPEDITION_NAME": spedition.name or "",
            "SPEDITION_STRASSE": spedition.strasse or "",
            "SPEDITION_PLZ": spedition.plz,
            "SPEDITION_STADT": spedition.stadt,
        })

    values.update({
        "AKTUELLES_DATUM": format_german_date(today),
        "RECHNUNGSNUMMER": invoice_number,
        "VERWENDUNGSZWECK": invoice_number.replace("IN-0", "", 1),
        "LIEFERDATUM": format_german_date(today + timedelta(days=7)),
        "RECHNUNGSDATUM": format_german_date(today),
    })
    return values


def replace_preview_placeholders(
    html_content: str,
    data: Optional[TemplateData],
    today: Optional[date] = None,
    invoice_number: Optional[str] = None,
) -> str:
    """Fill the editor preview placeholders in html_content."""
    if data is None:
        return html_content

    values = build_preview_values(data, today=today, invoice_number=invoice_number)
    return PREVIEW_PATTERN.sub(
        lambda m: values.get(m.group(1), m.group(0)), html_content
    )
