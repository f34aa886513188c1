"""
Order and Bank Account Intake

Validates requests from the external intake endpoints and stores the
resulting records:
- New orders create a customer and an order with DEKRA report numbers
- New bank accounts are normalized (IBAN/BIC) before storage
"""
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from config import APP_ORIGIN
from database import Database
from entities import Auto

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Invalid intake request."""

    def __init__(self, message: str, field: str = None, code: str = "VALIDATION_ERROR"):
        super().__init__(message)
        self.message = message
        self.field = field
        self.code = code

    def to_dict(self) -> Dict[str, Any]:
        error = {"code": self.code, "message": self.message}
        if self.field:
            error["field"] = self.field
        return error


@dataclass
class OrderResult:
    """Outcome of an order intake."""
    bestellung_id: int
    kunde_id: int
    kunde_typ: str
    generator_url: str


def _require_text(values: Dict, key: str, message: str, prefix: str = "") -> str:
    value = values.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message, field=f"{prefix}{key}")
    return value


def detect_kunde_typ(name: str, geschaeftsfuehrer: str) -> str:
    """A customer whose name equals the managing director is a private person."""
    if name.strip().lower() == geschaeftsfuehrer.strip().lower():
        return "privat"
    return "unternehmen"


def clean_dekra_nummer(nummer: Any) -> str:
    """Keep only the digits of a DEKRA report number."""
    return re.sub(r"\D", "", str(nummer))


def validate_order(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate an order intake request.

    Expected shape:
        {"kunde": {name, adresse, plz, stadt, geschaeftsfuehrer},
         "dekra_nummern": ["..."],
         "rabatt": {"aktiv": bool, "prozent": number}}

    Returns:
        Normalized kunde, dekra_nummern and rabatt values
    """
    kunde = payload.get("kunde") or {}
    if not isinstance(kunde, dict):
        raise ValidationError("Kundenname ist erforderlich", field="kunde.name")

    _require_text(kunde, "name", "Kundenname ist erforderlich", "kunde.")
    _require_text(kunde, "adresse", "Adresse ist erforderlich", "kunde.")
    plz = kunde.get("plz")
    if not isinstance(plz, str) or not re.fullmatch(r"\d{5}", plz):
        raise ValidationError("PLZ muss genau 5 Ziffern haben", field="kunde.plz")
    _require_text(kunde, "stadt", "Stadt ist erforderlich", "kunde.")
    _require_text(kunde, "geschaeftsfuehrer", "Geschäftsführer ist erforderlich", "kunde.")

    dekra_nummern = payload.get("dekra_nummern")
    if not isinstance(dekra_nummern, list) or not dekra_nummern:
        raise ValidationError("Mindestens eine DEKRA-Nummer erforderlich", field="dekra_nummern")

    rabatt = payload.get("rabatt") or {}
    aktiv = rabatt.get("aktiv") if isinstance(rabatt, dict) else None
    if not isinstance(aktiv, bool):
        raise ValidationError("Rabatt aktiv muss boolean sein", field="rabatt.aktiv")

    prozent = rabatt.get("prozent")
    if aktiv:
        if isinstance(prozent, bool) or not isinstance(prozent, (int, float)) or not 0 <= prozent <= 100:
            raise ValidationError("Rabatt muss zwischen 0 und 100 liegen", field="rabatt.prozent")

    return {
        "kunde": {
            key: kunde[key] for key in ("name", "adresse", "plz", "stadt", "geschaeftsfuehrer")
        },
        "dekra_nummern": [clean_dekra_nummer(n) for n in dekra_nummern],
        "rabatt_aktiv": aktiv,
        "rabatt_prozent": float(prozent) if aktiv else None,
    }


def create_order(db: Database, payload: Dict[str, Any], origin: str = None) -> OrderResult:
    """Validate an order request and store the customer and the order."""
    order = validate_order(payload)
    kunde = order["kunde"]
    kunde_typ = detect_kunde_typ(kunde["name"], kunde["geschaeftsfuehrer"])

    logger.info(
        "Order intake: %s (%s, %d DEKRA numbers, discount %s)",
        kunde["name"], kunde_typ, len(order["dekra_nummern"]), order["rabatt_aktiv"],
    )

    kunde_row, bestellung = db.create_order(kunde, {
        "kunde_typ": kunde_typ,
        "dekra_nummern": order["dekra_nummern"],
        "rabatt_aktiv": order["rabatt_aktiv"],
        "rabatt_prozent": order["rabatt_prozent"],
    })

    origin = (origin or APP_ORIGIN).rstrip("/")
    return OrderResult(
        bestellung_id=bestellung["id"],
        kunde_id=kunde_row["id"],
        kunde_typ=kunde_typ,
        generator_url=f"{origin}/admin/dokumente-erstellen?bestellung={bestellung['id']}",
    )


# ========== Bank Accounts ==========

BANKKONTO_REQUIRED = ["kontoname", "kontoinhaber", "iban", "bic", "bankname"]


def mask_iban(iban: Optional[str]) -> str:
    return f"{iban[:6]}***" if iban else ""


def validate_bankkonto(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and normalize a bank account intake request."""
    missing = [
        key for key in BANKKONTO_REQUIRED
        if not isinstance(payload.get(key), str) or not payload[key].strip()
    ]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}", field=missing[0]
        )

    geschlecht = payload.get("kontoinhaber_geschlecht") or "M"
    if geschlecht not in ("M", "W"):
        raise ValidationError(
            'kontoinhaber_geschlecht must be either "M" or "W"', field="kontoinhaber_geschlecht"
        )

    iban = re.sub(r"\s", "", payload["iban"]).upper()
    if not 15 <= len(iban) <= 34 or not re.fullmatch(r"[A-Z0-9]+", iban):
        raise ValidationError(
            "IBAN must be 15-34 characters and contain only letters and numbers", field="iban"
        )

    bic = re.sub(r"\s", "", payload["bic"]).upper()
    if not 8 <= len(bic) <= 11 or not re.fullmatch(r"[A-Z0-9]+", bic):
        raise ValidationError(
            "BIC must be 8-11 characters and contain only letters and numbers", field="bic"
        )

    return {
        "kontoname": payload["kontoname"].strip(),
        "kontoinhaber": payload["kontoinhaber"].strip(),
        "kontoinhaber_geschlecht": geschlecht,
        "iban": iban,
        "bic": bic,
        "bankname": payload["bankname"].strip(),
    }


def create_bankkonto(db: Database, payload: Dict[str, Any]) -> Dict:
    """Validate a bank account request and store it."""
    values = validate_bankkonto(payload)
    logger.info("Creating bank account %s (%s)", values["kontoname"], mask_iban(values["iban"]))
    return db.create("bankkonten", **values)


# ========== Discounts ==========

def apply_discount(autos: List[Auto], rabatt_prozent: Optional[float]) -> List[Auto]:
    """Copies of the vehicles with their net price reduced by the discount."""
    if not rabatt_prozent:
        return list(autos)
    factor = 1 - rabatt_prozent / 100
    return [
        replace(auto, einzelpreis_netto=(auto.einzelpreis_netto or 0) * factor)
        for auto in autos
    ]
