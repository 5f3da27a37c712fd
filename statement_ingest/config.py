# Ingestion Configuration
import logging
import os


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logging.warning(f"Invalid {name}={raw!r}, using default {default}")
        return default


class Config:
    DEFAULT_CURRENCY = "EUR"
    DEFAULT_ACCOUNT_ID = os.environ.get("STATEMENT_INGEST_ACCOUNT", "default")
    LEDGER_PATH = os.environ.get("STATEMENT_INGEST_LEDGER", "ledger.json")
    ALLOWED_EXTENSIONS = {'pdf', 'csv', 'txt'}

    # Document layout
    LINE_Y_TOLERANCE = 5
    AMOUNT_SANITY_CEILING_MINOR = 100_000_000

    # Labels
    LABEL_MIN_LENGTH = 3
    LABEL_MAX_LENGTH = 200
    ID_LABEL_LENGTH = 50

    # Recurrence detection
    SIMILARITY_THRESHOLD = _env_float("RECURRING_SIMILARITY_THRESHOLD", 0.6)
    AMOUNT_VARIANCE = _env_float("RECURRING_AMOUNT_VARIANCE", 0.2)
    FREQUENCY_GAPS = {
        "monthly": (25, 35),
        "quarterly": (85, 100),
        "annual": (350, 380),
    }
    STALENESS_DAYS = {"monthly": 45, "quarterly": 120, "annual": 400}

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("LOG_FILE")
    LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s'


def configure_logging(level=None, log_file=None):
    """Configure root logging for scripts. Library modules never call this."""
    level_name = str(level or Config.LOG_LEVEL).upper()
    logging.basicConfig(
        filename=log_file or Config.LOG_FILE,
        level=getattr(logging, level_name, logging.INFO),
        format=Config.LOG_FORMAT,
    )
