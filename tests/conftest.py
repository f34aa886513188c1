"""
Shared pytest fixtures for the Insolvenzpanel Admin tests.

Provides:
- Temporary SQLite database
- Sample entities and TemplateData
- Mock Anthropic client
- Docmosis client backed by httpx.MockTransport
"""
import os
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest

# Keep data files out of the project directory
os.environ.setdefault("INSOLVENZPANEL_DATA_DIR", tempfile.mkdtemp(prefix="insolvenzpanel-tests-"))

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from database import Database  # noqa: E402
from docmosis_client import DocmosisClient  # noqa: E402
from entities import (  # noqa: E402
    Auto,
    Bankkonto,
    InsolventesUnternehmen,
    Kanzlei,
    Kunde,
    Spedition,
    TemplateData,
)


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def db(tmp_path):
    """Empty database in a temporary directory."""
    return Database(tmp_path / "test.db")


@pytest.fixture
def seeded_db(db):
    """
    Database with one record per table.

    Returns (db, ids) where ids maps a short name to the row id.
    """
    ids = {
        "kanzlei": db.create(
            "anwaltskanzleien",
            name="Kanzlei Müller",
            rechtsanwalt="Dr. Hans Müller",
            strasse="Hauptstraße 1",
            plz="10115",
            stadt="Berlin",
            telefon="030 123456",
            email="info@kanzlei-mueller.de",
        )["id"],
        "unternehmen": db.create(
            "insolvente_unternehmen",
            name="Autohaus Pleite GmbH",
            amtsgericht="Amtsgericht Charlottenburg",
            aktenzeichen="36a IN 1234/24",
            handelsregister="HRB 98765",
            adresse="Industriestraße 5, 12345 Berlin",
        )["id"],
        "kunde": db.create(
            "kunden",
            name="Müller GmbH",
            geschaeftsfuehrer="Anna Müller",
            adresse="Musterstraße 1",
            plz="12345",
            stadt="Berlin",
        )["id"],
        "auto": db.create(
            "autos",
            marke="BMW",
            modell="320d",
            fahrgestell_nr="WBA12345678901234",
            dekra_bericht_nr="4711",
            erstzulassung="2019-03-15",
            kilometer=150000,
            einzelpreis_netto=12500.0,
        )["id"],
        "auto2": db.create(
            "autos",
            marke="VW",
            modell="Golf",
            fahrgestell_nr="WVW98765432109876",
            dekra_bericht_nr="4712",
            erstzulassung="2020-11-01",
            kilometer=80000.5,
            einzelpreis_netto=8000.0,
        )["id"],
        "bankkonto": db.create(
            "bankkonten",
            kontoname="Treuhandkonto",
            kontoinhaber="Dr. Hans Müller",
            kontoinhaber_geschlecht="M",
            iban="DE89370400440532013000",
            bic="COBADEFFXXX",
            bankname="Commerzbank",
        )["id"],
        "spedition": db.create(
            "speditionen",
            name="Schnell Transporte",
            strasse="Hafenweg 3",
            plz_stadt="20457 Hamburg",
        )["id"],
    }
    return db, ids


# ============================================================================
# Entities
# ============================================================================

@pytest.fixture
def kunde():
    return Kunde(id=1, name="Müller GmbH", geschaeftsfuehrer="Anna Müller",
                 adresse="Musterstraße 1", plz="12345", stadt="Berlin")


@pytest.fixture
def auto():
    return Auto(id=1, marke="BMW", modell="320d", fahrgestell_nr="WBA12345678901234",
                dekra_bericht_nr="4711", erstzulassung="2019-03-15",
                kilometer=150000.0, einzelpreis_netto=12500.0)


@pytest.fixture
def template_data(kunde, auto):
    """TemplateData with every entity selected."""
    return TemplateData(
        kanzlei=Kanzlei(id=1, name="Kanzlei Müller", rechtsanwalt="Dr. Hans Müller",
                        strasse="Hauptstraße 1", plz="10115", stadt="Berlin",
                        telefon="030 123456", email="info@kanzlei-mueller.de"),
        insolventes_unternehmen=InsolventesUnternehmen(
            id=1, name="Autohaus Pleite GmbH", amtsgericht="Amtsgericht Charlottenburg",
            aktenzeichen="36a IN 1234/24"),
        kunde=kunde,
        auto=auto,
        bankkonto=Bankkonto(id=1, kontoname="Treuhandkonto", kontoinhaber="Dr. Hans Müller",
                            iban="DE89370400440532013000", bic="COBADEFFXXX",
                            bankname="Commerzbank"),
        spedition=Spedition(id=1, name="Schnell Transporte", strasse="Hafenweg 3",
                            plz_stadt="20457 Hamburg"),
    )


# ============================================================================
# External Services
# ============================================================================

def make_message(text):
    """Anthropic-style message response with a single text block."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


@pytest.fixture
def mock_anthropic():
    """Mock Anthropic client; set .messages.create.return_value per test."""
    client = MagicMock()
    client.messages.create.return_value = make_message("Antwort")
    return client


@pytest.fixture
def docmosis_requests():
    """Requests received by the mock Docmosis transport."""
    return []


@pytest.fixture
def docmosis(docmosis_requests):
    """DocmosisClient whose transport records requests and returns fake DOCX bytes."""
    def handler(request):
        docmosis_requests.append(request)
        return httpx.Response(200, content=b"PK-docx-bytes")

    return DocmosisClient(
        api_key="test-key",
        api_url="https://docmosis.test/api/render",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
