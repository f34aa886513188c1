"""
Entity Row Shapes

Dataclasses for the business records that can be substituted into
templates and document payloads. Each record is built from a database row
and carries only flat string/number fields.
"""
import re
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Optional


class _Row:
    """Shared helpers for row dataclasses."""

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]]):
        """Build an instance from a database row, ignoring unknown columns."""
        if row is None:
            return None
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in dict(row).items() if k in names})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Kanzlei(_Row):
    """A law firm (Anwaltskanzlei)."""
    name: str = ""
    id: Optional[int] = None
    rechtsanwalt: Optional[str] = None
    strasse: Optional[str] = None
    plz: Optional[str] = None
    stadt: Optional[str] = None
    telefon: Optional[str] = None
    fax: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    ust_id: Optional[str] = None
    registergericht: Optional[str] = None
    register_nr: Optional[str] = None
    logo_url: Optional[str] = None
    is_default: bool = False


@dataclass
class InsolventesUnternehmen(_Row):
    """An insolvent company whose assets are being sold."""
    name: str = ""
    id: Optional[int] = None
    amtsgericht: Optional[str] = None
    aktenzeichen: Optional[str] = None
    handelsregister: Optional[str] = None
    adresse: Optional[str] = None
    is_default: bool = False


@dataclass
class Kunde(_Row):
    """A customer (private person or company)."""
    name: str = ""
    id: Optional[int] = None
    kundennummer: Optional[str] = None
    geschaeftsfuehrer: Optional[str] = None
    adresse: Optional[str] = None
    plz: Optional[str] = None
    stadt: Optional[str] = None
    aktenzeichen: Optional[str] = None


@dataclass
class Auto(_Row):
    """A vehicle offered for sale."""
    id: Optional[int] = None
    marke: Optional[str] = None
    modell: Optional[str] = None
    fahrgestell_nr: Optional[str] = None
    dekra_bericht_nr: Optional[str] = None
    erstzulassung: Optional[str] = None
    kilometer: Optional[float] = None
    einzelpreis_netto: Optional[float] = None


@dataclass
class Bankkonto(_Row):
    """A bank account payments are directed to."""
    id: Optional[int] = None
    kontoname: Optional[str] = None
    kontoinhaber: Optional[str] = None
    kontoinhaber_geschlecht: str = "M"
    iban: Optional[str] = None
    bic: Optional[str] = None
    bankname: Optional[str] = None


PLZ_STADT_PATTERN = re.compile(r"^(\d{5})\s+(.+)$")


@dataclass
class Spedition(_Row):
    """A freight forwarder. Postcode and city are stored combined."""
    name: str = ""
    id: Optional[int] = None
    strasse: Optional[str] = None
    plz_stadt: Optional[str] = None
    is_default: bool = False

    @property
    def plz(self) -> str:
        match = PLZ_STADT_PATTERN.match(self.plz_stadt or "")
        return match.group(1) if match else ""

    @property
    def stadt(self) -> str:
        match = PLZ_STADT_PATTERN.match(self.plz_stadt or "")
        return match.group(2) if match else (self.plz_stadt or "")


@dataclass
class Bestellung(_Row):
    """An order placed through the intake endpoint."""
    kunde_id: Optional[int] = None
    id: Optional[int] = None
    kunde_typ: str = "unternehmen"  # privat, unternehmen
    dekra_nummern: List[str] = field(default_factory=list)
    rabatt_aktiv: bool = False
    rabatt_prozent: Optional[float] = None


@dataclass
class TemplateData:
    """The entities selected for one render. Every entry is optional."""
    kanzlei: Optional[Kanzlei] = None
    insolventes_unternehmen: Optional[InsolventesUnternehmen] = None
    kunde: Optional[Kunde] = None
    auto: Optional[Auto] = None
    bankkonto: Optional[Bankkonto] = None
    spedition: Optional[Spedition] = None
