#!/usr/bin/env python3
"""
Insolvenzpanel Admin

Main CLI interface for the admin panel.
Provides commands for:
- Managing law firms, insolvent companies, customers, vehicles,
  bank accounts, forwarders and orders
- HTML templates (substitution and print layout)
- DOCX document generation via Docmosis
- The AI template assistant
- The JSON API server
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from config import LOG_LEVEL, LOGS_DIR, OUTPUT_DIR
from database import TABLE_COLUMNS, get_db
from docmosis_client import DocmosisError
from documents import DocumentGenerationError, DocumentGenerator, GeneratedDocument
from formatters import format_erstzulassung, format_kilometer, format_price, parse_formatted_number
from template_assistant import TemplateAssistant, TemplateAssistantError
from templates import TEMPLATE_TYPES, TemplateManager, create_default_templates


console = Console()


# Columns shown by `<entity> list`
LIST_COLUMNS = {
    "anwaltskanzleien": ["name", "rechtsanwalt", "stadt", "telefon"],
    "insolvente_unternehmen": ["name", "amtsgericht", "aktenzeichen"],
    "kunden": ["name", "geschaeftsfuehrer", "plz", "stadt"],
    "autos": ["marke", "modell", "fahrgestell_nr", "erstzulassung", "kilometer", "einzelpreis_netto"],
    "bankkonten": ["kontoname", "kontoinhaber", "iban", "bankname"],
    "speditionen": ["name", "strasse", "plz_stadt"],
    "bestellungen": ["kunde_id", "kunde_typ", "dekra_nummern", "rabatt_prozent"],
}

NUMERIC_COLUMNS = {"kilometer", "einzelpreis_netto", "rabatt_prozent", "kunde_id"}
BOOL_COLUMNS = {"is_default", "rabatt_aktiv"}
TRUE_VALUES = {"true", "1", "ja", "yes"}
FALSE_VALUES = {"false", "0", "nein", "no"}


def _display(column: str, value) -> str:
    if value is None:
        return "-"
    if column == "einzelpreis_netto":
        return format_price(value)
    if column == "kilometer":
        return format_kilometer(value)
    if column == "erstzulassung":
        return format_erstzulassung(value)
    if isinstance(value, list):
        return ", ".join(value)
    return str(value)


def _parse_bool(column: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise click.BadParameter(f"{column} expects true/false or ja/nein, got '{value}'")


def _parse_fields(table: str, fields: Tuple[str, ...]) -> dict:
    """Parse repeated --set column=value options."""
    values = {}
    for item in fields:
        if "=" not in item:
            raise click.BadParameter(f"Expected column=value, got '{item}'")
        column, value = item.split("=", 1)
        column = column.strip()
        if column not in TABLE_COLUMNS[table]:
            raise click.BadParameter(
                f"Unknown column '{column}'. Available: {', '.join(TABLE_COLUMNS[table])}"
            )
        if column in NUMERIC_COLUMNS:
            value = parse_formatted_number(value)
        elif column in BOOL_COLUMNS:
            value = _parse_bool(column, value)
        elif column == "dekra_nummern":
            value = [v.strip() for v in value.split(",") if v.strip()]
        values[column] = value
    return values


# ============================================================================
# CLI Group
# ============================================================================

@click.group()
@click.version_option(version="1.0.0")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """
    Insolvenzpanel Admin

    Manage business records, fill HTML templates and generate invoices,
    purchase contracts and trust agreements.
    """
    logging.basicConfig(
        level="DEBUG" if verbose else LOG_LEVEL,
        format="%(message)s",
        handlers=[
            RichHandler(console=console, show_path=False),
            logging.FileHandler(LOGS_DIR / "insolvenzpanel.log", encoding="utf-8"),
        ],
    )


# ============================================================================
# Dashboard
# ============================================================================

STATS_LABELS = {
    "kunden": "Kunden",
    "autos": "Autos",
    "anwaltskanzleien": "Kanzleien",
    "bankkonten": "Bankkonten",
    "speditionen": "Speditionen",
    "insolvente_unternehmen": "Insolvente Unternehmen",
}


@cli.command("stats")
def stats():
    """Show record counts."""
    counts = get_db().get_stats()

    table = Table(title="Übersicht")
    table.add_column("Bereich", style="cyan")
    table.add_column("Anzahl", justify="right")
    for key, label in STATS_LABELS.items():
        table.add_row(label, str(counts.get(key, 0)))

    console.print(table)


# ============================================================================
# Entity Commands
# ============================================================================

def _entity_group(command_name: str, table_name: str, title: str) -> click.Group:
    """Build list/show/add/update/delete commands for one table."""

    @click.group(command_name, help=f"Manage {title}.")
    def group():
        pass

    @group.command("list")
    def list_rows():
        """List all records."""
        rows = get_db().list(table_name)
        if not rows:
            console.print(f"[yellow]No {title} found.[/yellow]")
            return

        columns = LIST_COLUMNS[table_name]
        table = Table(title=title)
        table.add_column("ID", style="cyan", justify="right")
        for column in columns:
            table.add_column(column)
        for row in rows:
            marker = " *" if row.get("is_default") else ""
            table.add_row(f"{row['id']}{marker}", *(_display(c, row.get(c)) for c in columns))

        console.print(table)

    @group.command("show")
    @click.argument("row_id", type=int)
    def show_row(row_id: int):
        """Show one record."""
        row = get_db().get(table_name, row_id)
        if not row:
            console.print(f"[red]Record {row_id} not found[/red]")
            sys.exit(1)

        lines = "\n".join(f"{key}: {_display(key, value)}" for key, value in row.items())
        console.print(Panel(lines, title=f"{title} #{row_id}"))

    @group.command("add")
    @click.option("--set", "fields", multiple=True, help="column=value (repeatable)")
    def add_row(fields: Tuple[str, ...]):
        """Create a record."""
        values = _parse_fields(table_name, fields)
        try:
            row = get_db().create(table_name, **values)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            sys.exit(1)
        console.print(f"[green]Created {title} #{row['id']}[/green]")

    @group.command("update")
    @click.argument("row_id", type=int)
    @click.option("--set", "fields", multiple=True, help="column=value (repeatable)")
    def update_row(row_id: int, fields: Tuple[str, ...]):
        """Update a record."""
        values = _parse_fields(table_name, fields)
        row = get_db().update(table_name, row_id, **values)
        if not row:
            console.print(f"[red]Record {row_id} not found[/red]")
            sys.exit(1)
        console.print(f"[green]Updated {title} #{row_id}[/green]")

    @group.command("delete")
    @click.argument("row_id", type=int)
    @click.confirmation_option(prompt="Delete this record?")
    def delete_row(row_id: int):
        """Delete a record."""
        if get_db().delete(table_name, row_id):
            console.print(f"[green]Deleted {title} #{row_id}[/green]")
        else:
            console.print(f"[red]Record {row_id} not found[/red]")
            sys.exit(1)

    return group


for _command, _table, _title in [
    ("kanzleien", "anwaltskanzleien", "Kanzleien"),
    ("unternehmen", "insolvente_unternehmen", "Insolvente Unternehmen"),
    ("kunden", "kunden", "Kunden"),
    ("autos", "autos", "Autos"),
    ("bankkonten", "bankkonten", "Bankkonten"),
    ("speditionen", "speditionen", "Speditionen"),
    ("bestellungen", "bestellungen", "Bestellungen"),
]:
    cli.add_command(_entity_group(_command, _table, _title))


# ============================================================================
# Template Commands
# ============================================================================

@cli.group()
def templates():
    """Manage HTML templates."""
    pass


@templates.command("init")
def templates_init():
    """Install the default templates."""
    console.print("Creating default templates...")
    manager = create_default_templates()
    console.print("[green]Default templates created![/green]")

    for t in manager.list_templates():
        console.print(f"  - {t['slug']} ({t['type']})")


@templates.command("list")
@click.option("--type", "template_type", type=click.Choice(TEMPLATE_TYPES), help="Filter by template type")
def templates_list(template_type: Optional[str]):
    """List all templates."""
    manager = TemplateManager()
    items = manager.list_templates(template_type=template_type)

    if not items:
        console.print("[yellow]No templates found. Run 'templates init' to create defaults.[/yellow]")
        return

    table = Table(title="HTML Templates")
    table.add_column("Slug", style="cyan")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Active")
    table.add_column("Updated")

    for t in items:
        table.add_row(
            t["slug"],
            t["name"],
            t["type"],
            "yes" if t.get("is_active", True) else "no",
            t.get("updated_at", "")[:10],
        )

    console.print(table)


@templates.command("add")
@click.argument("name")
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--type", "template_type", type=click.Choice(TEMPLATE_TYPES), default="sonstiges")
@click.option("--footer", "footer_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def templates_add(name: str, html_file: Path, template_type: str, footer_file: Optional[Path]):
    """Create a template from an HTML file."""
    manager = TemplateManager()
    footer = footer_file.read_text(encoding="utf-8") if footer_file else None
    created = manager.create_template(
        name=name,
        html_content=html_file.read_text(encoding="utf-8"),
        template_type=template_type,
        footer_html=footer,
    )
    console.print(f"[green]Created template '{created['slug']}'[/green]")


@templates.command("show")
@click.argument("slug")
def templates_show(slug: str):
    """Show template content."""
    manager = TemplateManager()
    template = manager.get_template(slug)

    if not template:
        console.print(f"[red]Template '{slug}' not found[/red]")
        sys.exit(1)

    console.print(Panel(
        f"Name: {template['name']}\n"
        f"Type: {template['type']}\n"
        f"Placeholders: {', '.join(template.get('variables', []))}",
        title=f"Template: {slug}"
    ))
    console.print("\n[bold]Content:[/bold]")
    console.print(template["html_content"], markup=False)


@templates.command("delete")
@click.argument("slug")
@click.confirmation_option(prompt="Delete this template?")
def templates_delete(slug: str):
    """Delete a template."""
    if TemplateManager().delete_template(slug):
        console.print(f"[green]Deleted template '{slug}'[/green]")
    else:
        console.print(f"[red]Template '{slug}' not found[/red]")
        sys.exit(1)


@templates.command("render")
@click.argument("slug")
@click.option("--kanzlei", "kanzlei_id", type=int, help="Law firm ID")
@click.option("--unternehmen", "unternehmen_id", type=int, help="Insolvent company ID")
@click.option("--kunde", "kunde_id", type=int, help="Customer ID")
@click.option("--auto", "auto_id", type=int, help="Vehicle ID")
@click.option("--bankkonto", "bankkonto_id", type=int, help="Bank account ID")
@click.option("--spedition", "spedition_id", type=int, help="Forwarder ID")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write HTML to file")
def templates_render(
    slug: str,
    kanzlei_id: Optional[int],
    unternehmen_id: Optional[int],
    kunde_id: Optional[int],
    auto_id: Optional[int],
    bankkonto_id: Optional[int],
    spedition_id: Optional[int],
    output: Optional[Path],
):
    """Fill a template with records and print (or save) the print-ready HTML."""
    data = get_db().load_template_data(
        kanzlei_id=kanzlei_id,
        insolventes_unternehmen_id=unternehmen_id,
        kunde_id=kunde_id,
        auto_id=auto_id,
        bankkonto_id=bankkonto_id,
        spedition_id=spedition_id,
    )
    processed = TemplateManager().render(slug, data)
    if processed is None:
        console.print(f"[red]Template '{slug}' not found[/red]")
        sys.exit(1)

    if output:
        output.write_text(processed.processed_content, encoding="utf-8")
        console.print(f"[green]Saved to {output}[/green]")
    else:
        console.print(processed.processed_content, markup=False)


# ============================================================================
# Document Commands
# ============================================================================

def _save_document(doc: GeneratedDocument, output_dir: Path):
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / doc.filename
    path.write_bytes(doc.content)
    console.print(f"[green]Saved {path}[/green]")
    if doc.invoice_number:
        console.print(f"Rechnungsnummer: {doc.invoice_number}")


def _run_generation(method_name: str, output_dir: Path, **kwargs):
    generator = DocumentGenerator(get_db())
    try:
        with console.status("Generating document..."):
            doc = getattr(generator, method_name)(**kwargs)
    except (DocumentGenerationError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except DocmosisError as e:
        console.print(f"[red]Document generation failed: {e}[/red]")
        if e.response:
            console.print(e.response, markup=False)
        sys.exit(1)

    _save_document(doc, output_dir)


def _common_document_options(func):
    for option in reversed([
        click.option("--kanzlei", "kanzlei_id", type=int, required=True, help="Law firm ID"),
        click.option("--kunde", "kunde_id", type=int, required=True, help="Customer ID"),
        click.option("--bankkonto", "bankkonto_id", type=int, required=True, help="Bank account ID"),
        click.option("--unternehmen", "insolventes_unternehmen_id", type=int, required=True,
                     help="Insolvent company ID"),
        click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path),
                     default=OUTPUT_DIR, help="Directory for the DOCX"),
    ]):
        func = option(func)
    return func


@cli.group()
def documents():
    """Generate DOCX documents via Docmosis."""
    pass


@documents.command("rechnung")
@_common_document_options
@click.option("--auto", "auto_ids", type=int, multiple=True, required=True, help="Vehicle ID (repeatable)")
@click.option("--rabatt", "rabatt_prozent", type=float, help="Discount in percent")
def documents_rechnung(output_dir: Path, auto_ids: Tuple[int, ...], **kwargs):
    """Generate an invoice."""
    _run_generation("generate_rechnung", output_dir, auto_ids=list(auto_ids), **kwargs)


@documents.command("kaufvertrag")
@_common_document_options
@click.option("--spedition", "spedition_id", type=int, required=True, help="Forwarder ID")
@click.option("--auto", "auto_id", type=int, required=True, help="Vehicle ID")
def documents_kaufvertrag(output_dir: Path, **kwargs):
    """Generate a purchase contract."""
    _run_generation("generate_kaufvertrag", output_dir, **kwargs)


@documents.command("treuhandvertrag")
@_common_document_options
@click.option("--gender", type=click.Choice(["M", "W"]), required=True, help="Account holder wording")
def documents_treuhandvertrag(output_dir: Path, **kwargs):
    """Generate a trust agreement."""
    _run_generation("generate_treuhandvertrag", output_dir, **kwargs)


# ============================================================================
# Assistant Commands
# ============================================================================

@cli.group()
def assistant():
    """AI template assistant."""
    pass


@assistant.command("ask")
@click.argument("prompt")
@click.option("--template", "slug", help="Template slug to include as context")
def assistant_ask(prompt: str, slug: Optional[str]):
    """Ask a question about an HTML template."""
    html_content = None
    context = None
    if slug:
        template = TemplateManager().get_template(slug)
        if not template:
            console.print(f"[red]Template '{slug}' not found[/red]")
            sys.exit(1)
        html_content = template["html_content"]
        context = f"{template['name']} ({template['type']})"

    try:
        with console.status("Thinking..."):
            answer = TemplateAssistant().ask(prompt, html_content=html_content, context=context)
    except TemplateAssistantError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    console.print(Panel(answer, title="Assistant"))


@assistant.command("words")
@click.argument("amount", type=float)
def assistant_words(amount: float):
    """Convert an amount to German words."""
    try:
        console.print(TemplateAssistant().amount_to_words(amount))
    except TemplateAssistantError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


# ============================================================================
# Server Command
# ============================================================================

@cli.command("serve")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8000, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve_cmd(host: str, port: int, reload: bool):
    """Launch the JSON API."""
    from api import run_server

    console.print(f"\n[bold]Starting Insolvenzpanel API...[/bold]")
    console.print(f"Open [link=http://{host}:{port}/docs]http://{host}:{port}/docs[/link] in your browser\n")

    run_server(host=host, port=port, reload=reload)


# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
