# whoson/config.py
import os

from dotenv import load_dotenv

from .errors import ConfigurationError
from .utils import get_timezone, load_version, parse_bool, parse_int


def load_config(overrides=None):
    load_dotenv()
    cfg = {
        # Core
        "DATABASE_URL": os.getenv("DATABASE_URL", "sqlite:///whoson_cache.db"),
        "TIMEZONE": os.getenv("TIMEZONE", "UTC"),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
        "APP_VERSION": load_version(),

        # Cache / sync
        "SYNC_FRESHNESS_SECONDS": parse_int(os.getenv("SYNC_FRESHNESS_SECONDS"), "SYNC_FRESHNESS_SECONDS", 60),
        "WHOSON_API_URL": os.getenv("WHOSON_API_URL", ""),

        # Paging
        "DEFAULT_BATCH_SIZE": parse_int(os.getenv("DEFAULT_BATCH_SIZE"), "DEFAULT_BATCH_SIZE", 100),
        "MAX_BATCH_SIZE": parse_int(os.getenv("MAX_BATCH_SIZE"), "MAX_BATCH_SIZE", 100),

        # Upstream
        "ENABLE_MOCK_DATA": parse_bool(os.getenv("ENABLE_MOCK_DATA")),
        "MOCK_DATA_SEED": parse_int(os.getenv("MOCK_DATA_SEED"), "MOCK_DATA_SEED"),
        "SHIFT_FEED_URL": os.getenv("SHIFT_FEED_URL", ""),
        "SHIFT_FEED_TIMEOUT": parse_int(os.getenv("SHIFT_FEED_TIMEOUT"), "SHIFT_FEED_TIMEOUT", 30),
    }
    if overrides:
        cfg.update(overrides)

    get_timezone(cfg["TIMEZONE"])
    if cfg["SYNC_FRESHNESS_SECONDS"] < 0:
        raise ConfigurationError("SYNC_FRESHNESS_SECONDS must not be negative")
    if not 1 <= cfg["DEFAULT_BATCH_SIZE"] <= cfg["MAX_BATCH_SIZE"]:
        raise ConfigurationError("DEFAULT_BATCH_SIZE must be between 1 and MAX_BATCH_SIZE")
    return cfg
