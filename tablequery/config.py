# tablequery/config.py
# Environment-driven settings. Values are read once at import time after
# loading a local .env file, the same way the service reads everything else.

from __future__ import annotations
import os, logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

# ---- Config (all defined here) ---------------------------------------------

DATABASE_URL = os.getenv("TABLEQUERY_DATABASE_URL", "")
TABLES_FILE = Path(os.getenv("TABLEQUERY_TABLES_FILE", "config/tables.yaml"))
MAX_LIMIT = int(os.getenv("TABLEQUERY_MAX_LIMIT", "1000"))
LOG_LEVEL = os.getenv("TABLEQUERY_LOG_LEVEL", "INFO").upper()
CORS_ALLOW_ORIGINS = os.getenv("TABLEQUERY_CORS_ALLOW_ORIGINS", "")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    database_url: str = ""
    tables_file: Path = field(default_factory=lambda: Path("config/tables.yaml"))
    max_limit: int = 1000
    log_level: str = "INFO"
    cors_allow_origins: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Snapshot the environment. Re-reads os.environ so tests and scripts
        that patch the environment after import see their values.
        """
        origins_raw = os.getenv("TABLEQUERY_CORS_ALLOW_ORIGINS", CORS_ALLOW_ORIGINS)
        return cls(
            database_url=os.getenv("TABLEQUERY_DATABASE_URL", DATABASE_URL),
            tables_file=Path(os.getenv("TABLEQUERY_TABLES_FILE", str(TABLES_FILE))),
            max_limit=int(os.getenv("TABLEQUERY_MAX_LIMIT", str(MAX_LIMIT))),
            log_level=os.getenv("TABLEQUERY_LOG_LEVEL", LOG_LEVEL).upper(),
            cors_allow_origins=[o.strip() for o in origins_raw.split(",") if o.strip()],
        )


_logging_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)
    _logging_configured = True


__all__ = [
    "DATABASE_URL",
    "TABLES_FILE",
    "MAX_LIMIT",
    "LOG_LEVEL",
    "Settings",
    "configure_logging",
]
