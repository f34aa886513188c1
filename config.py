"""
Insolvenzpanel Configuration
"""
import os
from pathlib import Path

# Load environment variables from .env file
from dotenv import dotenv_values

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    _env_values = dotenv_values(_env_path)
    for key, value in _env_values.items():
        if value and not os.environ.get(key):  # Set if value exists and env not already set
            os.environ[key] = value

# Base paths
BASE_DIR = Path(__file__).parent
DATA_DIR = Path(os.getenv("INSOLVENZPANEL_DATA_DIR", BASE_DIR / "data"))
TEMPLATES_DIR = DATA_DIR / "templates"
LOGS_DIR = DATA_DIR / "logs"
OUTPUT_DIR = DATA_DIR / "output"

# Ensure directories exist
DATA_DIR.mkdir(parents=True, exist_ok=True)
TEMPLATES_DIR.mkdir(exist_ok=True)
LOGS_DIR.mkdir(exist_ok=True)
OUTPUT_DIR.mkdir(exist_ok=True)

# Database
DB_FILE = DATA_DIR / "insolvenzpanel.db"

# Docmosis rendering service
DOCMOSIS_API_URL = os.getenv("DOCMOSIS_API_URL", "https://eu1.dws4.docmosis.com/api/render")
DOCMOSIS_API_KEY = os.getenv("DOCMOSIS_API_KEY", "")
DOCMOSIS_TIMEOUT = float(os.getenv("DOCMOSIS_TIMEOUT", "60"))

# Anthropic (template assistant, amount to words)
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")

# Public origin used when building generator links for new orders
APP_ORIGIN = os.getenv("INSOLVENZPANEL_ORIGIN", "https://your-domain.com")

# Pricing
VAT_RATE = 0.19
SKONTO_FACTOR = 0.97

# Invoice numbers: the first issued number is INVOICE_NUMBER_START + 1
INVOICE_NUMBER_START = 23975

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
