"""
Document Generation

Builds the Docmosis data payloads for the three contract documents and
renders them as DOCX:
- Rechnung (invoice) for one or more vehicles
- Kaufvertrag (purchase contract) for a single vehicle
- Treuhandvertrag (trust agreement), male or female account holder wording
"""
import base64
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from database import Database
from docmosis_client import DocmosisClient
from entities import (
    Auto,
    Bankkonto,
    InsolventesUnternehmen,
    Kanzlei,
    Kunde,
    Spedition,
)
from formatters import (
    calculate_prices,
    format_erstzulassung,
    format_german_date,
    format_iban,
    format_invoice_number,
    format_kilometer,
    format_price,
    sanitize_filename,
)
from orders import apply_discount
from template_assistant import TemplateAssistant, TemplateAssistantError

logger = logging.getLogger(__name__)


RECHNUNG_TEMPLATE = "Rechnung.docx"
KAUFVERTRAG_TEMPLATE = "Kaufvertrag 1 Fahrzeug Privat.docx"
TREUHANDVERTRAG_TEMPLATES = {"M": "Treuhandvertrag-M.docx", "W": "Treuhandvertrag-W.docx"}
GENDER_LABELS = {"M": "Männlich", "W": "Weiblich"}

AMOUNT_WORDS_FALLBACK = "Fehler bei der Konvertierung"

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class DocumentGenerationError(Exception):
    """A document cannot be generated from the selected data."""


@dataclass
class GeneratedDocument:
    """A rendered document ready for download."""
    filename: str
    content: bytes
    invoice_number: Optional[str] = None

    @property
    def base64(self) -> str:
        return base64.b64encode(self.content).decode("ascii")


def _require(**entities):
    for name, value in entities.items():
        if not value:
            raise DocumentGenerationError(f"{name} nicht gefunden")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# ========== Payload Builders ==========

def kanzlei_fields(kanzlei: Kanzlei) -> Dict[str, str]:
    return {
        "kanzlei_name": _text(kanzlei.name),
        "kanzlei_strasse": _text(kanzlei.strasse),
        "kanzlei_plz": _text(kanzlei.plz),
        "kanzlei_stadt": _text(kanzlei.stadt),
        "kanzlei_telefon": _text(kanzlei.telefon),
        "kanzlei_fax": _text(kanzlei.fax),
        "kanzlei_email": _text(kanzlei.email),
        "kanzlei_website": _text(kanzlei.website),
        "kanzlei_amtsgericht": _text(kanzlei.registergericht),
        "kanzlei_register": _text(kanzlei.register_nr),
        "kanzlei_ustid": _text(kanzlei.ust_id),
        "kanzlei_anwalt": _text(kanzlei.rechtsanwalt),
    }


def kunde_fields(kunde: Kunde) -> Dict[str, str]:
    return {
        "kunde_unternehmen": _text(kunde.name),
        "kunde_strasse": _text(kunde.adresse),
        "kunde_plzstadt": f"{_text(kunde.plz)} {_text(kunde.stadt)}".strip(),
    }


def insolvenz_fields(inso: InsolventesUnternehmen) -> Dict[str, str]:
    return {
        "inso_unternehmen": _text(inso.name),
        "zustaendiges_amtsgericht": _text(inso.amtsgericht),
        "aktenzeichen": _text(inso.aktenzeichen),
        "handelsregister": _text(inso.handelsregister),
    }


def build_rechnung_data(
    kanzlei: Kanzlei,
    kunde: Kunde,
    bankkonto: Bankkonto,
    inso: InsolventesUnternehmen,
    autos: List[Auto],
    rechnungsnummer: str,
    today: date = None,
) -> Dict[str, Any]:
    """Docmosis data for an invoice covering all given vehicles."""
    einzelpreise = [auto.einzelpreis_netto or 0 for auto in autos]
    prices = calculate_prices(sum(einzelpreise))

    return {
        **kanzlei_fields(kanzlei),
        "iban": _text(bankkonto.iban),
        "bic": _text(bankkonto.bic),
        "bank": _text(bankkonto.bankname),
        "kontoname": _text(bankkonto.kontoname),
        **kunde_fields(kunde),
        **insolvenz_fields(inso),
        "datum": format_german_date(today),
        "rechnungsnummer": rechnungsnummer,
        "autos": [
            {
                "marke": _text(auto.marke),
                "modell": _text(auto.modell),
                "fahrgestellnr": _text(auto.fahrgestell_nr),
                "dekranr": _text(auto.dekra_bericht_nr),
                "erstzulassung": format_erstzulassung(auto.erstzulassung, short_year=True),
                "kilometer": format_kilometer(auto.kilometer),
            }
            for auto in autos
        ],
        "epreis": [{"einzelpreis": format_price(preis)} for preis in einzelpreise],
        "nettopreis": format_price(prices["nettopreis"]),
        "mwst": format_price(prices["mwst"]),
        "bruttopreis": format_price(prices["bruttopreis"]),
    }


def build_kaufvertrag_data(
    kanzlei: Kanzlei,
    kunde: Kunde,
    bankkonto: Bankkonto,
    inso: InsolventesUnternehmen,
    spedition: Spedition,
    auto: Auto,
    nettopreis_worte: str,
    today: date = None,
) -> Dict[str, Any]:
    """Docmosis data for a single-vehicle purchase contract."""
    prices = calculate_prices(auto.einzelpreis_netto or 0)

    return {
        **kanzlei_fields(kanzlei),
        "iban": _text(bankkonto.iban),
        "bic": _text(bankkonto.bic),
        "bank": _text(bankkonto.bankname),
        **kunde_fields(kunde),
        "datum": format_german_date(today),
        **insolvenz_fields(inso),
        "inso_adresse": _text(inso.adresse),
        "marke": _text(auto.marke),
        "modell": _text(auto.modell),
        "fahrgestellnr": _text(auto.fahrgestell_nr),
        "dekranr": _text(auto.dekra_bericht_nr),
        "erstzulassung": format_erstzulassung(auto.erstzulassung, short_year=True),
        "kilometer": format_kilometer(auto.kilometer or 0),
        "einzelpreis": format_price(prices["nettopreis"]),
        "nettopreis": format_price(prices["nettopreis"]),
        "nettopreis_worte": nettopreis_worte,
        "bruttopreis": format_price(prices["bruttopreis"]),
        "spedition_unternehmen": _text(spedition.name),
        "spedition_strasse": _text(spedition.strasse),
        "spedition_plzstadt": _text(spedition.plz_stadt),
    }


def build_treuhandvertrag_data(
    kanzlei: Kanzlei,
    kunde: Kunde,
    bankkonto: Bankkonto,
    inso: InsolventesUnternehmen,
    today: date = None,
) -> Dict[str, Any]:
    """Docmosis data for a trust agreement."""
    return {
        **kunde_fields(kunde),
        "kanzlei_name": _text(kanzlei.name),
        "kanzlei_strasse": _text(kanzlei.strasse),
        "kanzlei_plz": _text(kanzlei.plz),
        "kanzlei_stadt": _text(kanzlei.stadt),
        "aktenzeichen": _text(inso.aktenzeichen),
        "kontoname": _text(bankkonto.kontoname),
        "bank": _text(bankkonto.bankname),
        "iban": format_iban(bankkonto.iban),
        "bic": _text(bankkonto.bic),
        "kanzlei_anwalt": _text(kanzlei.rechtsanwalt),
        "datum": format_german_date(today),
    }


# ========== Generator ==========

class DocumentGenerator:
    """
    Loads the selected records, builds the payload and renders it.

    Usage:
        generator = DocumentGenerator(get_db())
        doc = generator.generate_rechnung(kanzlei_id=1, kunde_id=2, bankkonto_id=1,
                                          insolventes_unternehmen_id=1, auto_ids=[4, 5])
        Path(doc.filename).write_bytes(doc.content)
    """

    def __init__(
        self,
        db: Database,
        docmosis: DocmosisClient = None,
        assistant: TemplateAssistant = None,
    ):
        self.db = db
        self.docmosis = docmosis or DocmosisClient()
        self._assistant = assistant

    @property
    def assistant(self) -> TemplateAssistant:
        if self._assistant is None:
            self._assistant = TemplateAssistant()
        return self._assistant

    def _amount_in_words(self, amount: float) -> str:
        try:
            return self.assistant.amount_to_words(amount)
        except TemplateAssistantError as e:
            logger.warning("Amount to words failed, using fallback text: %s", e)
            return AMOUNT_WORDS_FALLBACK

    def generate_rechnung(
        self,
        kanzlei_id: int,
        kunde_id: int,
        bankkonto_id: int,
        insolventes_unternehmen_id: int,
        auto_ids: List[int],
        rabatt_prozent: float = None,
        today: date = None,
    ) -> GeneratedDocument:
        """Render an invoice and allocate the next invoice number.

        The number is released again when the render fails.
        """
        data = self.db.load_template_data(
            kanzlei_id=kanzlei_id,
            kunde_id=kunde_id,
            bankkonto_id=bankkonto_id,
            insolventes_unternehmen_id=insolventes_unternehmen_id,
        )
        _require(
            Kanzlei=data.kanzlei,
            Kunde=data.kunde,
            Bankkonto=data.bankkonto,
            **{"Insolventes Unternehmen": data.insolventes_unternehmen},
        )
        autos = self.db.get_autos(auto_ids or [])
        if not autos:
            raise DocumentGenerationError("Keine Autos gefunden")
        autos = apply_discount(autos, rabatt_prozent)

        number = self.db.next_invoice_number()
        rechnungsnummer = format_invoice_number(number)
        logger.info("Generating Rechnung %s for %d vehicles", rechnungsnummer, len(autos))

        filename = f"Rechnung_{rechnungsnummer}.docx"
        try:
            payload = build_rechnung_data(
                data.kanzlei, data.kunde, data.bankkonto, data.insolventes_unternehmen,
                autos, rechnungsnummer, today=today,
            )
            content = self.docmosis.render(RECHNUNG_TEMPLATE, filename, payload)
        except Exception:
            self.db.release_invoice_number(number)
            raise
        return GeneratedDocument(filename=filename, content=content, invoice_number=rechnungsnummer)

    def generate_kaufvertrag(
        self,
        kanzlei_id: int,
        kunde_id: int,
        bankkonto_id: int,
        insolventes_unternehmen_id: int,
        spedition_id: int,
        auto_id: int,
        today: date = None,
    ) -> GeneratedDocument:
        """Render a purchase contract for one vehicle."""
        data = self.db.load_template_data(
            kanzlei_id=kanzlei_id,
            kunde_id=kunde_id,
            bankkonto_id=bankkonto_id,
            insolventes_unternehmen_id=insolventes_unternehmen_id,
            spedition_id=spedition_id,
            auto_id=auto_id,
        )
        _require(
            Kanzlei=data.kanzlei,
            Kunde=data.kunde,
            Bankkonto=data.bankkonto,
            Spedition=data.spedition,
            Auto=data.auto,
            **{"Insolventes Unternehmen": data.insolventes_unternehmen},
        )

        auto = data.auto
        words = self._amount_in_words(auto.einzelpreis_netto or 0)
        payload = build_kaufvertrag_data(
            data.kanzlei, data.kunde, data.bankkonto, data.insolventes_unternehmen,
            data.spedition, auto, words, today=today,
        )
        filename = sanitize_filename(f"Kaufvertrag_{_text(auto.marke)}_{_text(auto.modell)}.docx")
        logger.info("Generating %s", filename)
        content = self.docmosis.render(KAUFVERTRAG_TEMPLATE, filename, payload)
        return GeneratedDocument(filename=filename, content=content)

    def generate_treuhandvertrag(
        self,
        kanzlei_id: int,
        kunde_id: int,
        bankkonto_id: int,
        insolventes_unternehmen_id: int,
        gender: str,
        today: date = None,
    ) -> GeneratedDocument:
        """Render a trust agreement; gender is 'M' or 'W'."""
        if gender not in TREUHANDVERTRAG_TEMPLATES:
            raise ValueError('Invalid gender parameter. Must be "M" or "W".')

        data = self.db.load_template_data(
            kanzlei_id=kanzlei_id,
            kunde_id=kunde_id,
            bankkonto_id=bankkonto_id,
            insolventes_unternehmen_id=insolventes_unternehmen_id,
        )
        _require(
            Kanzlei=data.kanzlei,
            Kunde=data.kunde,
            Bankkonto=data.bankkonto,
            **{"Insolventes Unternehmen": data.insolventes_unternehmen},
        )

        payload = build_treuhandvertrag_data(
            data.kanzlei, data.kunde, data.bankkonto, data.insolventes_unternehmen, today=today,
        )
        filename = f"Treuhandvertrag {GENDER_LABELS[gender]} {sanitize_filename(data.kunde.name)}.docx"
        logger.info("Generating %s", filename)
        content = self.docmosis.render(TREUHANDVERTRAG_TEMPLATES[gender], "treuhandvertrag.docx", payload)
        return GeneratedDocument(filename=filename, content=content)
