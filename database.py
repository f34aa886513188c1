"""
Database Module

SQLite database for the admin panel records:
- Law firms, insolvent companies, customers, vehicles
- Bank accounts, freight forwarders
- Orders from the intake endpoint
- The running invoice number
"""
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from contextlib import contextmanager

from config import DB_FILE, INVOICE_NUMBER_START
from entities import (
    Auto,
    Bankkonto,
    InsolventesUnternehmen,
    Kanzlei,
    Kunde,
    Spedition,
    TemplateData,
)

logger = logging.getLogger(__name__)


# Writable columns per table
TABLE_COLUMNS: Dict[str, List[str]] = {
    "anwaltskanzleien": [
        "name", "rechtsanwalt", "strasse", "plz", "stadt", "telefon", "fax", "email",
        "website", "ust_id", "registergericht", "register_nr", "logo_url", "is_default",
    ],
    "insolvente_unternehmen": [
        "name", "amtsgericht", "aktenzeichen", "handelsregister", "adresse", "is_default",
    ],
    "kunden": [
        "name", "kundennummer", "geschaeftsfuehrer", "adresse", "plz", "stadt", "aktenzeichen",
    ],
    "autos": [
        "marke", "modell", "fahrgestell_nr", "dekra_bericht_nr", "erstzulassung",
        "kilometer", "einzelpreis_netto",
    ],
    "bankkonten": [
        "kontoname", "kontoinhaber", "kontoinhaber_geschlecht", "iban", "bic", "bankname",
    ],
    "speditionen": ["name", "strasse", "plz_stadt", "is_default"],
    "bestellungen": ["kunde_id", "kunde_typ", "dekra_nummern", "rabatt_aktiv", "rabatt_prozent"],
}

# Tables counted on the dashboard
ENTITY_TABLES = [
    "kunden", "autos", "anwaltskanzleien", "bankkonten", "speditionen", "insolvente_unternehmen",
]

_JSON_COLUMNS = {"dekra_nummern"}
_BOOL_COLUMNS = {"is_default", "rabatt_aktiv"}


class Database:
    """SQLite database wrapper for the admin panel."""

    def __init__(self, db_path: Path = DB_FILE):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_tables()

    @contextmanager
    def _get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_tables(self):
        """Initialize database tables."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS anwaltskanzleien (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    rechtsanwalt TEXT,
                    strasse TEXT,
                    plz TEXT,
                    stadt TEXT,
                    telefon TEXT,
                    fax TEXT,
                    email TEXT,
                    website TEXT,
                    ust_id TEXT,
                    registergericht TEXT,
                    register_nr TEXT,
                    logo_url TEXT,
                    is_default BOOLEAN DEFAULT FALSE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS insolvente_unternehmen (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    amtsgericht TEXT,
                    aktenzeichen TEXT,
                    handelsregister TEXT,
                    adresse TEXT,
                    is_default BOOLEAN DEFAULT FALSE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS kunden (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    kundennummer TEXT,
                    geschaeftsfuehrer TEXT,
                    adresse TEXT,
                    plz TEXT,
                    stadt TEXT,
                    aktenzeichen TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS autos (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    marke TEXT,
                    modell TEXT,
                    fahrgestell_nr TEXT,
                    dekra_bericht_nr TEXT,
                    erstzulassung DATE,
                    kilometer REAL,
                    einzelpreis_netto REAL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS bankkonten (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    kontoname TEXT,
                    kontoinhaber TEXT,
                    kontoinhaber_geschlecht TEXT DEFAULT 'M',
                    iban TEXT,
                    bic TEXT,
                    bankname TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS speditionen (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    strasse TEXT,
                    plz_stadt TEXT,
                    is_default BOOLEAN DEFAULT FALSE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS bestellungen (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    kunde_id INTEGER NOT NULL REFERENCES kunden(id),
                    kunde_typ TEXT NOT NULL DEFAULT 'unternehmen',
                    dekra_nummern TEXT NOT NULL DEFAULT '[]',
                    rabatt_aktiv BOOLEAN DEFAULT FALSE,
                    rabatt_prozent REAL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            # Single-row counter for invoice numbers
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS rechnungsnummern (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    letzte_nummer INTEGER NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.commit()

    # ========== Row Conversion ==========

    def _check_table(self, table: str):
        if table not in TABLE_COLUMNS:
            raise ValueError(f"Unknown table: {table}")

    def _encode(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(values) - set(TABLE_COLUMNS[table])
        if unknown:
            raise ValueError(f"Unknown columns for {table}: {', '.join(sorted(unknown))}")
        encoded = {}
        for key, value in values.items():
            if key in _JSON_COLUMNS:
                value = json.dumps(list(value or []))
            elif key in _BOOL_COLUMNS and value is not None:
                value = bool(value)
            encoded[key] = value
        return encoded

    def _decode(self, row: Optional[sqlite3.Row]) -> Optional[Dict]:
        if row is None:
            return None
        result = dict(row)
        for key in _JSON_COLUMNS & result.keys():
            result[key] = json.loads(result[key] or "[]")
        for key in _BOOL_COLUMNS & result.keys():
            result[key] = bool(result[key])
        return result

    # ========== Generic CRUD ==========

    def create(self, table: str, **values) -> Dict:
        """Insert a row and return it."""
        self._check_table(table)
        encoded = self._encode(table, values)
        if not encoded:
            raise ValueError(f"No values given for {table}")

        with self._get_connection() as conn:
            row_id = self._insert(conn.cursor(), table, encoded)

        logger.info("Created %s row %d", table, row_id)
        return self.get(table, row_id)

    def _insert(self, cursor: sqlite3.Cursor, table: str, encoded: Dict[str, Any]) -> int:
        columns = ", ".join(encoded)
        placeholders = ", ".join("?" for _ in encoded)
        if encoded.get("is_default"):
            cursor.execute(f"UPDATE {table} SET is_default = FALSE")
        cursor.execute(
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            list(encoded.values()),
        )
        return cursor.lastrowid

    def create_order(self, kunde: Dict[str, Any], bestellung: Dict[str, Any]) -> Tuple[Dict, Dict]:
        """Insert a customer and its order in one transaction."""
        kunde_values = self._encode("kunden", kunde)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            kunde_id = self._insert(cursor, "kunden", kunde_values)
            bestellung_values = self._encode("bestellungen", {**bestellung, "kunde_id": kunde_id})
            bestellung_id = self._insert(cursor, "bestellungen", bestellung_values)

        logger.info("Created kunden row %d with bestellungen row %d", kunde_id, bestellung_id)
        return self.get("kunden", kunde_id), self.get("bestellungen", bestellung_id)

    def get(self, table: str, row_id: int) -> Optional[Dict]:
        """Get a row by id."""
        self._check_table(table)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,))
            return self._decode(cursor.fetchone())

    def list(self, table: str) -> List[Dict]:
        """List all rows, newest first."""
        self._check_table(table)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {table} ORDER BY created_at DESC, id DESC")
            return [self._decode(row) for row in cursor.fetchall()]

    def update(self, table: str, row_id: int, **values) -> Optional[Dict]:
        """Update a row. Returns the updated row or None if not found."""
        self._check_table(table)
        encoded = self._encode(table, values)
        if not encoded:
            return self.get(table, row_id)

        assignments = ", ".join(f"{column} = ?" for column in encoded)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            if encoded.get("is_default"):
                cursor.execute(f"UPDATE {table} SET is_default = FALSE WHERE id != ?", (row_id,))
            cursor.execute(
                f"UPDATE {table} SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                [*encoded.values(), row_id],
            )
            if cursor.rowcount == 0:
                return None

        return self.get(table, row_id)

    def delete(self, table: str, row_id: int) -> bool:
        """Delete a row."""
        self._check_table(table)
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Deleted %s row %d", table, row_id)
        return deleted

    def get_default(self, table: str) -> Optional[Dict]:
        """Get the row flagged as default, if the table has one."""
        self._check_table(table)
        if "is_default" not in TABLE_COLUMNS[table]:
            return None
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT * FROM {table} WHERE is_default = TRUE LIMIT 1")
            return self._decode(cursor.fetchone())

    # ========== Template Data ==========

    def load_template_data(
        self,
        kanzlei_id: int = None,
        insolventes_unternehmen_id: int = None,
        kunde_id: int = None,
        auto_id: int = None,
        bankkonto_id: int = None,
        spedition_id: int = None,
    ) -> TemplateData:
        """Fetch the selected entities. Missing or unknown ids stay empty."""
        def _load(table, row_id):
            return self.get(table, row_id) if row_id else None

        return TemplateData(
            kanzlei=Kanzlei.from_row(_load("anwaltskanzleien", kanzlei_id)),
            insolventes_unternehmen=InsolventesUnternehmen.from_row(
                _load("insolvente_unternehmen", insolventes_unternehmen_id)
            ),
            kunde=Kunde.from_row(_load("kunden", kunde_id)),
            auto=Auto.from_row(_load("autos", auto_id)),
            bankkonto=Bankkonto.from_row(_load("bankkonten", bankkonto_id)),
            spedition=Spedition.from_row(_load("speditionen", spedition_id)),
        )

    def get_autos(self, auto_ids: List[int]) -> List[Auto]:
        """Fetch several vehicles, keeping the requested order."""
        autos = []
        for auto_id in auto_ids:
            row = self.get("autos", auto_id)
            if row:
                autos.append(Auto.from_row(row))
        return autos

    # ========== Invoice Numbers ==========

    def next_invoice_number(self) -> int:
        """Increment and return the invoice counter."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            cursor.execute(
                "INSERT OR IGNORE INTO rechnungsnummern (id, letzte_nummer) VALUES (1, ?)",
                (INVOICE_NUMBER_START,),
            )
            cursor.execute("""
                UPDATE rechnungsnummern
                SET letzte_nummer = letzte_nummer + 1, updated_at = CURRENT_TIMESTAMP
                WHERE id = 1
            """)
            cursor.execute("SELECT letzte_nummer FROM rechnungsnummern WHERE id = 1")
            number = cursor.fetchone()["letzte_nummer"]

        logger.info("Allocated invoice number %d", number)
        return number

    def release_invoice_number(self, number: int) -> bool:
        """Step the counter back if number is still the last one issued."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                UPDATE rechnungsnummern
                SET letzte_nummer = letzte_nummer - 1, updated_at = CURRENT_TIMESTAMP
                WHERE id = 1 AND letzte_nummer = ?
            """, (number,))
            released = cursor.rowcount == 1

        if released:
            logger.info("Released invoice number %d", number)
        else:
            logger.warning("Invoice number %d not released, a later number was issued", number)
        return released

    def last_invoice_number(self) -> Optional[int]:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT letzte_nummer FROM rechnungsnummern WHERE id = 1")
            row = cursor.fetchone()
            return row["letzte_nummer"] if row else None

    # ========== Dashboard ==========

    def get_stats(self) -> Dict[str, int]:
        """Row counts for the dashboard."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            stats = {}
            for table in ENTITY_TABLES:
                cursor.execute(f"SELECT COUNT(*) AS count FROM {table}")
                stats[table] = cursor.fetchone()["count"]
            return stats


# Singleton instance
_db_instance = None


def get_db() -> Database:
    """Get or create a singleton database instance."""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database()
    return _db_instance
