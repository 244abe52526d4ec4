import os
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./seo_remediation.db")

# External content system (WordPress REST API)
WP_SITE_URL = os.getenv("WP_SITE_URL", "").rstrip("/")
WP_USERNAME = os.getenv("WP_USERNAME", "")
WP_APP_PASSWORD = os.getenv("WP_APP_PASSWORD", "")

# Timeouts and delays, in seconds
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "10"))
WP_TIMEOUT = float(os.getenv("WP_TIMEOUT", "15"))
PROPAGATION_DELAY = float(os.getenv("PROPAGATION_DELAY", "3"))
BATCH_DELAY = float(os.getenv("BATCH_DELAY", "1"))

# Ledger and scoring
RECENT_FIXES_LIMIT = int(os.getenv("RECENT_FIXES_LIMIT", "10"))
SCORE_FLOOR = int(os.getenv("SCORE_FLOOR", "15"))
NO_PAGES_SCORE = int(os.getenv("NO_PAGES_SCORE", "15"))

ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:3001").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def parse_url_aliases(raw: str) -> Dict[str, str]:
    """Parse ``alias=canonical`` pairs separated by commas."""
    aliases: Dict[str, str] = {}
    for pair in raw.split(","):
        if "=" not in pair:
            continue
        alias, canonical = pair.split("=", 1)
        alias, canonical = alias.strip(), canonical.strip()
        if alias and canonical:
            aliases[alias] = canonical
    return aliases


# Page URLs that moved after an audit ran, e.g. a renamed slug.
URL_ALIASES = parse_url_aliases(os.getenv("URL_ALIASES", ""))
