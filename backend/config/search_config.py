"""
Configuration settings for the research repository search engine.

Every path and server setting can be overridden from the environment
(or a .env file loaded by the CLI).
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).parent.parent

DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
DATA_DIR.mkdir(parents=True, exist_ok=True)

DATABASE_PATH = os.getenv("DATABASE_PATH", str(DATA_DIR / "research.db"))


# SEARCH CONFIGURATION

SEARCH_CONFIG = {
    # Default result limits per endpoint
    "default_limit": 50,
    "max_limit": 200,
    "similar_default_limit": 5,
    "recommendation_default_limit": 10,

    # "Find similar" fetches limit * multiplier candidates before TF-IDF ranking
    "similar_candidate_multiplier": 2,

    # Number of key terms extracted from the source paper for "find similar"
    "similar_key_terms": 10,
}


# QUERY PARSER CONFIGURATION

QUERY_CONFIG = {
    # "legacy": last AND/OR seen joins every condition (saved-query compatible)
    # "binary": left-associative grouping, "A AND B OR C" -> (A AND B) OR C
    "operator_mode": os.getenv("QUERY_OPERATOR_MODE", "legacy"),
}


# RECOMMENDATION CONFIGURATION

RECOMMENDATION_CONFIG = {
    # Most recent view events considered when building an interest profile
    "view_history_window": 50,

    # Profile keywords used to seed the candidate pool
    "top_keywords": 10,
}


# CONCURRENCY CONFIGURATION

CONCURRENCY_CONFIG = {
    # Workers for blocking SQLite and ranking calls made from async routes
    "search_thread_pool_size": int(os.getenv("SEARCH_THREADS", "4")),
}


# LOGGING CONFIGURATION

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = Path(os.getenv("LOG_DIR", str(DATA_DIR / "logs")))
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def _json_file_handler(filename: str, level: str = LOG_LEVEL) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": str(LOG_DIR / filename),
        "maxBytes": LOG_MAX_BYTES,
        "backupCount": LOG_BACKUP_COUNT,
        "formatter": "json",
        "level": level,
    }


def _logger(*file_handlers: str) -> dict:
    return {
        "handlers": ["console", *file_handlers, "errors"],
        "level": LOG_LEVEL,
        "propagate": False,
    }


LOG_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "class": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": "%(asctime)s %(name)s %(levelname)s %(module)s %(message)s"
        },
        "console": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": LOG_LEVEL,
            "formatter": "console",
            "stream": "ext://sys.stdout"
        },
        "api": _json_file_handler("api.log"),
        "search": _json_file_handler("search.log"),
        "storage": _json_file_handler("storage.log"),
        "errors": _json_file_handler("errors.log", level="ERROR"),
    },
    "loggers": {
        "api": _logger("api"),
        "search": _logger("search"),
        "storage": _logger("storage"),
        "": {
            "handlers": ["console", "errors"],
            "level": LOG_LEVEL
        }
    }
}


# API CONFIGURATION

API_CONFIG = {
    "host": os.getenv("API_HOST", "0.0.0.0"),
    "port": int(os.getenv("API_PORT", "8000")),
    "reload": os.getenv("RELOAD", "false").lower() == "true",
    "log_level": LOG_LEVEL.lower()
}

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000"
    ).split(",")
    if origin.strip()
]


# ENVIRONMENT

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
