# group_archive/core/config.py

import enum
import logging
import logging.handlers
import os
import sys

from dotenv import load_dotenv
from sqlalchemy.engine import URL

# Load environment variables from .env in the project root, if present.
# Values already set in the environment win.
dotenv_path = os.path.join(os.path.dirname(__file__), "..", "..", ".env")
load_dotenv(dotenv_path=dotenv_path, override=False)


class BackendKind(str, enum.Enum):
    EMBEDDED = "embedded"
    NETWORKED = "networked"


_BACKEND_ALIASES = {
    "embedded": BackendKind.EMBEDDED,
    "sqlite": BackendKind.EMBEDDED,
    "networked": BackendKind.NETWORKED,
    "postgres": BackendKind.NETWORKED,
    "postgresql": BackendKind.NETWORKED,
}

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


class Settings:
    """Simple settings object to hold configuration values"""

    def __init__(self):
        self.DB_CLIENT = os.getenv("DB_CLIENT", "embedded").strip().lower()
        self.DB_PATH = os.getenv("DB_PATH", "./data.sqlite")

        # Networked engine, named after the libpq environment variables
        self.PGHOST = os.getenv("PGHOST", "localhost")
        self.PGPORT = int(os.getenv("PGPORT", "5432"))
        self.PGDATABASE = os.getenv("PGDATABASE")
        self.PGUSER = os.getenv("PGUSER")
        self.PGPASSWORD = os.getenv("PGPASSWORD")
        self.PGSSL = _env_flag("PGSSL")
        self.PGPOOL_MAX = int(os.getenv("PGPOOL_MAX", "10"))

        self.DB_OPERATION_TIMEOUT = float(os.getenv("DB_OPERATION_TIMEOUT", "5"))
        self.SNAPSHOT_SERIALIZE_PER_GROUP = _env_flag("SNAPSHOT_SERIALIZE_PER_GROUP")
        self.STORAGE_ALERT_THRESHOLD = int(os.getenv("STORAGE_ALERT_THRESHOLD", "5"))

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_DIR = os.getenv("LOG_DIR", "logs")

        if self.DB_CLIENT not in _BACKEND_ALIASES:
            logging.warning(
                f"Unknown DB_CLIENT '{self.DB_CLIENT}', falling back to the embedded engine."
            )
        if self.PGPOOL_MAX < 1:
            logging.warning(f"PGPOOL_MAX={self.PGPOOL_MAX} is not usable, using 1.")
            self.PGPOOL_MAX = 1

    @property
    def backend_kind(self) -> BackendKind:
        return _BACKEND_ALIASES.get(self.DB_CLIENT, BackendKind.EMBEDDED)

    @property
    def networked_url(self) -> URL:
        """SQLAlchemy URL for the networked engine."""
        query = {"sslmode": "require"} if self.PGSSL else {}
        return URL.create(
            "postgresql+psycopg2",
            username=self.PGUSER,
            password=self.PGPASSWORD,
            host=self.PGHOST,
            port=self.PGPORT,
            database=self.PGDATABASE,
            query=query,
        )


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = None, log_dir: str = None):
    """Configure application logging"""
    level = level or settings.LOG_LEVEL
    log_dir = settings.LOG_DIR if log_dir is None else log_dir

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        # app.log is started afresh every five days
        file_handler = logging.handlers.TimedRotatingFileHandler(
            os.path.join(log_dir, "app.log"),
            when="D",
            interval=5,
            backupCount=1,
            encoding="utf-8",
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )

    # SQL echo is never wanted in the application log
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# Create global settings instance
settings = Settings()
