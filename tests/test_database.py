"""
Tests for the SQLite database layer.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from database import Database
from entities import Auto, Spedition


class TestCrud:

    def test_create_and_get(self, db):
        row = db.create("kunden", name="Acme GmbH", plz="12345")

        assert row["id"] == 1
        assert row["name"] == "Acme GmbH"
        assert db.get("kunden", row["id"])["plz"] == "12345"
        assert db.get("kunden", 999) is None

    def test_list_newest_first(self, db):
        db.create("kunden", name="Erster")
        db.create("kunden", name="Zweiter")

        assert [r["name"] for r in db.list("kunden")] == ["Zweiter", "Erster"]

    def test_update(self, db):
        row = db.create("autos", marke="BMW", einzelpreis_netto=1000)

        updated = db.update("autos", row["id"], einzelpreis_netto=1500.5)
        assert updated["einzelpreis_netto"] == 1500.5
        assert updated["marke"] == "BMW"
        assert db.update("autos", 999, marke="VW") is None

    def test_delete(self, db):
        row = db.create("speditionen", name="Spedi")

        assert db.delete("speditionen", row["id"]) is True
        assert db.delete("speditionen", row["id"]) is False
        assert db.list("speditionen") == []

    def test_unknown_table_and_column(self, db):
        with pytest.raises(ValueError):
            db.create("benutzer", name="x")
        with pytest.raises(ValueError):
            db.create("kunden", name="x", passwort="geheim")

    def test_create_without_values(self, db):
        with pytest.raises(ValueError):
            db.create("kunden")

    def test_json_and_bool_columns(self, db):
        kunde = db.create("kunden", name="Acme")
        row = db.create(
            "bestellungen", kunde_id=kunde["id"], kunde_typ="unternehmen",
            dekra_nummern=["123", "456"], rabatt_aktiv=True, rabatt_prozent=10,
        )

        assert row["dekra_nummern"] == ["123", "456"]
        assert row["rabatt_aktiv"] is True

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "shared.db"
        Database(path).create("kunden", name="Acme")

        assert Database(path).list("kunden")[0]["name"] == "Acme"


class TestCreateOrder:

    def test_creates_customer_and_order(self, db):
        kunde, bestellung = db.create_order(
            {"name": "Anna Müller", "plz": "12345"},
            {"kunde_typ": "privat", "dekra_nummern": ["4711"], "rabatt_aktiv": False},
        )

        assert bestellung["kunde_id"] == kunde["id"]
        assert bestellung["dekra_nummern"] == ["4711"]
        assert db.get("kunden", kunde["id"])["name"] == "Anna Müller"

    def test_bad_order_rolls_back_customer(self, db):
        with pytest.raises(ValueError, match="Unknown columns"):
            db.create_order({"name": "Anna Müller"}, {"unbekannt": 1})

        assert db.list("kunden") == []


class TestDefaults:

    def test_single_default_per_table(self, db):
        first = db.create("anwaltskanzleien", name="Erste", is_default=True)
        second = db.create("anwaltskanzleien", name="Zweite", is_default=True)

        assert db.get("anwaltskanzleien", first["id"])["is_default"] is False
        assert db.get_default("anwaltskanzleien")["id"] == second["id"]

        db.update("anwaltskanzleien", first["id"], is_default=True)
        assert db.get_default("anwaltskanzleien")["id"] == first["id"]
        assert db.get("anwaltskanzleien", second["id"])["is_default"] is False

    def test_table_without_default_flag(self, db):
        db.create("kunden", name="Acme")
        assert db.get_default("kunden") is None


class TestTemplateData:

    def test_load_template_data(self, seeded_db):
        db, ids = seeded_db

        data = db.load_template_data(
            kanzlei_id=ids["kanzlei"],
            insolventes_unternehmen_id=ids["unternehmen"],
            kunde_id=ids["kunde"],
            auto_id=ids["auto"],
            bankkonto_id=ids["bankkonto"],
            spedition_id=ids["spedition"],
        )

        assert data.kanzlei.rechtsanwalt == "Dr. Hans Müller"
        assert data.insolventes_unternehmen.aktenzeichen == "36a IN 1234/24"
        assert data.kunde.name == "Müller GmbH"
        assert isinstance(data.auto, Auto)
        assert data.auto.einzelpreis_netto == 12500.0
        assert data.bankkonto.iban == "DE89370400440532013000"
        assert isinstance(data.spedition, Spedition)
        assert data.spedition.stadt == "Hamburg"

    def test_missing_ids_stay_empty(self, seeded_db):
        db, ids = seeded_db

        data = db.load_template_data(kunde_id=ids["kunde"], auto_id=999)

        assert data.kunde is not None
        assert data.auto is None
        assert data.kanzlei is None

    def test_get_autos_keeps_order_and_skips_missing(self, seeded_db):
        db, ids = seeded_db

        autos = db.get_autos([ids["auto2"], 999, ids["auto"]])
        assert [a.marke for a in autos] == ["VW", "BMW"]


class TestInvoiceNumbers:

    def test_first_number(self, db):
        assert db.last_invoice_number() is None
        assert db.next_invoice_number() == 23976
        assert db.last_invoice_number() == 23976

    def test_numbers_increment(self, db):
        numbers = [db.next_invoice_number() for _ in range(3)]
        assert numbers == [23976, 23977, 23978]

    def test_counter_survives_reopen(self, tmp_path):
        path = tmp_path / "counter.db"
        Database(path).next_invoice_number()

        assert Database(path).next_invoice_number() == 23977

    def test_release_last_number(self, db):
        number = db.next_invoice_number()

        assert db.release_invoice_number(number) is True
        assert db.next_invoice_number() == 23976

    def test_release_keeps_later_numbers(self, db):
        first = db.next_invoice_number()
        db.next_invoice_number()

        assert db.release_invoice_number(first) is False
        assert db.last_invoice_number() == 23977


class TestStats:

    def test_get_stats(self, seeded_db):
        db, _ = seeded_db

        stats = db.get_stats()

        assert stats == {
            "kunden": 1,
            "autos": 2,
            "anwaltskanzleien": 1,
            "bankkonten": 1,
            "speditionen": 1,
            "insolvente_unternehmen": 1,
        }
