"""
Tests for {{ namespace.field }} substitution.

Run with: pytest tests/test_template_data.py -v
"""
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from entities import Auto, Kunde, Spedition, TemplateData
from template_data import find_tokens, replace_template_data, unresolved_tokens


TODAY = date(2024, 3, 5)


class TestReplaceTemplateData:
    """Token substitution."""

    def test_replaces_known_field_and_keeps_unknown_namespace(self):
        data = TemplateData(kunde=Kunde(name="Acme GmbH"))
        result = replace_template_data("Hallo {{ kunde.name }}, {{ unknown.field }}", data, today=TODAY)
        assert result == "Hallo Acme GmbH, {{ unknown.field }}"

    def test_absent_entity_tokens_stay_verbatim(self):
        html = "<p>{{ kunde.name }} / {{kunde.plz}} / {{  kunde.stadt  }}</p>"
        result = replace_template_data(html, TemplateData(), today=TODAY)
        assert result == html

    def test_none_data_behaves_like_empty_bag(self):
        assert replace_template_data("{{ auto.marke }}", None, today=TODAY) == "{{ auto.marke }}"

    def test_current_date_always_replaced(self):
        result = replace_template_data("Berlin, {{ current_date }} und {{current_date}}", None, today=TODAY)
        assert result == "Berlin, 05.03.2024 und 05.03.2024"

    def test_whitespace_inside_braces_tolerated(self):
        data = TemplateData(kunde=Kunde(name="Acme"))
        html = "{{kunde.name}}|{{ kunde.name }}|{{   kunde.name\t}}"
        assert replace_template_data(html, data, today=TODAY) == "Acme|Acme|Acme"

    def test_null_field_becomes_empty_string(self):
        data = TemplateData(kunde=Kunde(name="Acme", plz=None))
        assert replace_template_data("[{{ kunde.plz }}]", data, today=TODAY) == "[]"

    def test_unknown_field_of_present_entity_left_in_place(self):
        data = TemplateData(kunde=Kunde(name="Acme"))
        assert replace_template_data("{{ kunde.iban }}", data, today=TODAY) == "{{ kunde.iban }}"

    def test_unternehmen_namespace_maps_to_insolvent_company(self, template_data):
        result = replace_template_data("{{ unternehmen.aktenzeichen }}", template_data, today=TODAY)
        assert result == "36a IN 1234/24"

    def test_numbers_use_plain_conversion(self):
        data = TemplateData(auto=Auto(kilometer=150000.0, einzelpreis_netto=12500.5))
        result = replace_template_data("{{ auto.kilometer }} km, {{ auto.einzelpreis_netto }}", data, today=TODAY)
        assert result == "150000 km, 12500.5"

    def test_spedition_plz_and_stadt_split(self):
        data = TemplateData(spedition=Spedition(name="Spedi", plz_stadt="20457 Hamburg"))
        result = replace_template_data("{{ spedition.plz }} {{ spedition.stadt }}", data, today=TODAY)
        assert result == "20457 Hamburg"

    def test_values_are_not_escaped(self):
        data = TemplateData(kunde=Kunde(name="Müller & Söhne <GmbH>"))
        assert replace_template_data("{{ kunde.name }}", data, today=TODAY) == "Müller & Söhne <GmbH>"

    def test_inserted_values_are_not_rescanned(self):
        data = TemplateData(kunde=Kunde(name="{{ kunde.stadt }}", stadt="Berlin"))
        assert replace_template_data("{{ kunde.name }}", data, today=TODAY) == "{{ kunde.stadt }}"

    def test_idempotent_on_substituted_output(self, template_data):
        html = (
            "<h1>{{ kanzlei.name }}</h1><p>{{ kunde.name }}, {{ kunde.adresse }}</p>"
            "<p>{{ auto.marke }} {{ auto.modell }}</p><p>{{ bankkonto.iban }}</p>"
            "<p>{{ current_date }}</p>"
        )
        once = replace_template_data(html, template_data, today=TODAY)
        assert replace_template_data(once, template_data, today=TODAY) == once

    def test_every_known_field_resolved_when_all_entities_present(self, template_data):
        html = " ".join([
            "{{ kanzlei.name }}", "{{ kanzlei.rechtsanwalt }}", "{{ kanzlei.email }}",
            "{{ unternehmen.name }}", "{{ kunde.geschaeftsfuehrer }}", "{{ auto.fahrgestell_nr }}",
            "{{ bankkonto.bic }}", "{{ spedition.strasse }}",
        ])
        result = replace_template_data(html, template_data, today=TODAY)
        assert "{{" not in result
        assert "Dr. Hans Müller" in result
        assert "COBADEFFXXX" in result


class TestTokenHelpers:
    """find_tokens / unresolved_tokens."""

    def test_find_tokens_in_order_without_duplicates(self):
        html = "{{ kunde.name }} {{ current_date }} {{kunde.name}} {{ auto.marke }}"
        assert find_tokens(html) == ["kunde.name", "current_date", "auto.marke"]

    def test_unresolved_tokens_after_substitution(self):
        data = TemplateData(kunde=Kunde(name="Acme"))
        result = replace_template_data("{{ kunde.name }} {{ auto.marke }} {{ current_date }}", data, today=TODAY)
        assert unresolved_tokens(result) == ["auto.marke"]

    @pytest.mark.parametrize("html", ["{{ }}", "{ kunde.name }", "{{ kunde. }}", "{{ 1abc.name }}"])
    def test_malformed_tokens_ignored(self, html):
        assert find_tokens(html) == []
