"""
HTML Template Management

Manages the HTML document templates used for PDF output.
Templates are stored as .html files in the templates directory (with an
optional footer file); metadata is stored in templates.json.
Rendering fills {{ namespace.field }} tokens and converts the result into
print layout.
"""
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional

from config import TEMPLATES_DIR
from entities import TemplateData
from formatters import slugify
from print_layout import ProcessedHTML, process_html_with_footers
from template_data import find_tokens, replace_template_data

logger = logging.getLogger(__name__)


TEMPLATE_TYPES = ["rechnung", "angebot", "mahnung", "sonstiges"]


class TemplateManager:
    """
    Manages HTML templates stored locally.

    Each template is identified by a slug generated from its name.
    """

    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self.templates_dir = Path(templates_dir)
        self.templates_dir.mkdir(parents=True, exist_ok=True)
        self.metadata_file = self.templates_dir / "templates.json"
        self._init_metadata()

    def _init_metadata(self):
        """Initialize or load templates metadata."""
        if not self.metadata_file.exists():
            self._save_metadata({})

    def _load_metadata(self) -> Dict:
        """Load templates metadata from JSON file."""
        with open(self.metadata_file, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save_metadata(self, metadata: Dict):
        """Save templates metadata to JSON file."""
        with open(self.metadata_file, "w", encoding="utf-8") as f:
            json.dump(metadata, f, indent=2, ensure_ascii=False)

    def _write(self, filename: str, content: str):
        with open(self.templates_dir / filename, "w", encoding="utf-8") as f:
            f.write(content)

    def _read(self, filename: Optional[str]) -> Optional[str]:
        if not filename:
            return None
        filepath = self.templates_dir / filename
        if not filepath.exists():
            return None
        with open(filepath, "r", encoding="utf-8") as f:
            return f.read()

    def _unique_slug(self, name: str, metadata: Dict) -> str:
        base = slugify(name) or "template"
        slug = base
        counter = 2
        while slug in metadata:
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    def create_template(
        self,
        name: str,
        html_content: str,
        template_type: str = "sonstiges",
        footer_html: str = None,
        is_active: bool = True,
    ) -> dict:
        """
        Create a new template.

        Args:
            name: Human-readable template name
            html_content: Template HTML with {{ namespace.field }} tokens
            template_type: rechnung, angebot, mahnung or sonstiges
            footer_html: Optional footer HTML used on every page
            is_active: Whether the template is offered for generation

        Returns:
            Template metadata dict including the generated slug
        """
        if template_type not in TEMPLATE_TYPES:
            raise ValueError(f"Unknown template type: {template_type}")

        metadata = self._load_metadata()
        slug = self._unique_slug(name, metadata)

        filename = f"{slug}.html"
        self._write(filename, html_content)

        footer_filename = None
        if footer_html:
            footer_filename = f"{slug}.footer.html"
            self._write(footer_filename, footer_html)

        now = datetime.now().isoformat()
        metadata[slug] = {
            "name": name,
            "filename": filename,
            "footer_filename": footer_filename,
            "type": template_type,
            "is_active": is_active,
            "variables": find_tokens(html_content),
            "created_at": now,
            "updated_at": now,
        }
        self._save_metadata(metadata)
        logger.info("Created template %s", slug)

        return {"slug": slug, **metadata[slug]}

    def get_template(self, slug: str) -> Optional[dict]:
        """Get a template's metadata together with its HTML and footer."""
        metadata = self._load_metadata()
        if slug not in metadata:
            return None

        entry = metadata[slug]
        return {
            "slug": slug,
            **entry,
            "html_content": self._read(entry["filename"]) or "",
            "footer_html": self._read(entry.get("footer_filename")),
        }

    def list_templates(self, template_type: str = None, active_only: bool = False) -> List[dict]:
        """
        List all templates, optionally filtered by type.

        Args:
            template_type: Filter by template type
            active_only: Skip deactivated templates

        Returns:
            List of template metadata dicts
        """
        metadata = self._load_metadata()
        templates = []

        for slug, data in metadata.items():
            if template_type is not None and data.get("type") != template_type:
                continue
            if active_only and not data.get("is_active", True):
                continue
            templates.append({"slug": slug, **data})

        return templates

    def update_template(
        self,
        slug: str,
        html_content: str = None,
        footer_html: str = None,
        **kwargs,
    ) -> Optional[dict]:
        """
        Update an existing template.

        Args:
            slug: Template slug
            html_content: New template HTML (optional)
            footer_html: New footer HTML (optional)
            **kwargs: Other metadata fields to update (name, type, is_active)

        Returns:
            Updated template metadata or None if not found
        """
        metadata = self._load_metadata()
        if slug not in metadata:
            return None
        entry = metadata[slug]

        if html_content is not None:
            self._write(entry["filename"], html_content)
            entry["variables"] = find_tokens(html_content)

        if footer_html is not None:
            entry["footer_filename"] = entry.get("footer_filename") or f"{slug}.footer.html"
            self._write(entry["footer_filename"], footer_html)

        if "type" in kwargs and kwargs["type"] not in TEMPLATE_TYPES:
            raise ValueError(f"Unknown template type: {kwargs['type']}")
        for key, value in kwargs.items():
            if key in ["name", "type", "is_active"]:
                entry[key] = value

        entry["updated_at"] = datetime.now().isoformat()
        self._save_metadata(metadata)

        return {"slug": slug, **entry}

    def delete_template(self, slug: str) -> bool:
        """Delete a template and its files."""
        metadata = self._load_metadata()
        if slug not in metadata:
            return False

        entry = metadata.pop(slug)
        for filename in (entry.get("filename"), entry.get("footer_filename")):
            if filename and (self.templates_dir / filename).exists():
                (self.templates_dir / filename).unlink()

        self._save_metadata(metadata)
        logger.info("Deleted template %s", slug)
        return True

    def render(self, slug: str, data: TemplateData, today: date = None) -> Optional[ProcessedHTML]:
        """
        Fill a template with entity data and convert it to print layout.

        Returns:
            ProcessedHTML or None if the template does not exist
        """
        template = self.get_template(slug)
        if not template:
            return None

        html = replace_template_data(template["html_content"], data, today=today)
        footer = template.get("footer_html")
        if footer:
            footer = replace_template_data(footer, data, today=today)

        return process_html_with_footers(html, footer_content=footer, today=today)


DEFAULT_TEMPLATES = [
    {
        "name": "Rechnung",
        "type": "rechnung",
        "html_content": """<html>
<head>
<style>
  body { font-family: Arial, sans-serif; font-size: 12px; }
  .absender { font-size: 9px; color: #444; }
  .rechts { text-align: right; }
</style>
</head>
<body>
<div class="pdf-content">
  <p class="absender">{{ kanzlei.name }} · {{ kanzlei.strasse }} · {{ kanzlei.plz }} {{ kanzlei.stadt }}</p>
  <p>
    {{ kunde.name }}<br>
    {{ kunde.adresse }}<br>
    {{ kunde.plz }} {{ kunde.stadt }}
  </p>
  <p class="rechts">{{ kanzlei.stadt }}, den {{ current_date }}</p>
  <h2>Rechnung</h2>
  <p>Insolvenzverfahren {{ unternehmen.name }}, Amtsgericht {{ unternehmen.amtsgericht }},
     Az. {{ unternehmen.aktenzeichen }}</p>
  <table>
    <tr><th>Fahrzeug</th><th>Fahrgestell-Nr.</th><th>DEKRA</th><th>Netto</th></tr>
    <tr>
      <td>{{ auto.marke }} {{ auto.modell }}</td>
      <td>{{ auto.fahrgestell_nr }}</td>
      <td>{{ auto.dekra_bericht_nr }}</td>
      <td>{{ auto.einzelpreis_netto }} €</td>
    </tr>
  </table>
  <p>Bitte überweisen Sie den Betrag auf das Konto {{ bankkonto.kontoinhaber }},
     IBAN {{ bankkonto.iban }}, BIC {{ bankkonto.bic }}.</p>
  <p>{{ kanzlei.rechtsanwalt }}<br>Rechtsanwalt</p>
</div>
<div class="pdf-footer" style="position: fixed; bottom: 0;">
  {{ kanzlei.name }} · {{ kanzlei.telefon }} · {{ kanzlei.email }} · {{ kanzlei.website }}
</div>
</body>
</html>
""",
    },
    {
        "name": "Kaufvertrag",
        "type": "sonstiges",
        "html_content": """<html>
<head><style>body { font-family: Arial, sans-serif; font-size: 12px; }</style></head>
<body>
<div class="pdf-content">
  <h2>Kaufvertrag</h2>
  <p>zwischen {{ unternehmen.name }}, vertreten durch {{ kanzlei.rechtsanwalt }} ({{ kanzlei.name }}),
     und {{ kunde.name }}, {{ kunde.adresse }}, {{ kunde.plz }} {{ kunde.stadt }}.</p>
  <p>Kaufgegenstand: {{ auto.marke }} {{ auto.modell }}, Fahrgestell-Nr. {{ auto.fahrgestell_nr }},
     Erstzulassung {{ auto.erstzulassung }}, Kilometerstand {{ auto.kilometer }}.</p>
  <p>Kaufpreis netto: {{ auto.einzelpreis_netto }} €</p>
  <p>Abholung durch {{ spedition.name }}, {{ spedition.strasse }}, {{ spedition.plz }} {{ spedition.stadt }}.</p>
  <p>{{ kanzlei.stadt }}, {{ current_date }}</p>
</div>
</body>
</html>
""",
    },
]


def create_default_templates(manager: TemplateManager = None) -> TemplateManager:
    """Install the default templates that are not present yet."""
    manager = manager or TemplateManager()
    existing = {t["name"] for t in manager.list_templates()}

    for template in DEFAULT_TEMPLATES:
        if template["name"] in existing:
            continue
        manager.create_template(
            name=template["name"],
            html_content=template["html_content"],
            template_type=template["type"],
        )

    return manager
