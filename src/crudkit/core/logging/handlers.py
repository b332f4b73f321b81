"""
Handler factories for logging.dictConfig.

Each function returns a plain dict (no side effects) that builder.py slots
into the "handlers" section. Formatter and filter names refer to entries
builder.py declares.

| Handler         | Destination        | Level       | Active when                       |
| --------------- | ------------------ | ----------- | --------------------------------- |
| `console`       | stderr             | LOG_LEVEL   | always                            |
| `file`          | LOG_DIR/crudkit.log | LOG_LEVEL  | LOG_TO_STDOUT=false and LOG_DIR   |
| `error_file`    | LOG_DIR/errors.log | ERROR       | LOG_TO_STDOUT=false and LOG_DIR   |
| `error_console` | stderr (JSON)      | ERROR       | otherwise                         |
"""

from pathlib import Path

from crudkit.config.settings import Settings

_FILTERS = ["request_id", "redact"]


def _formatter_name(settings: Settings) -> str:
    return "json" if settings.LOG_FORMAT == "json" else "standard"


def get_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filters": list(_FILTERS),
    }


def get_file_handler(settings: Settings) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": _formatter_name(settings),
        "level": settings.LOG_LEVEL,
        "filename": str(Path(settings.LOG_DIR) / "crudkit.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(_FILTERS),
    }


def get_error_file_handler(settings: Settings) -> dict:
    # error files stay structured whatever LOG_FORMAT says
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",
        "level": "ERROR",
        "filename": str(Path(settings.LOG_DIR) / "errors.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
        "filters": list(_FILTERS),
    }


def get_error_console_handler(settings: Settings) -> dict:
    return {
        "class": "logging.StreamHandler",
        "formatter": "json",
        "level": "ERROR",
        "filters": list(_FILTERS),
    }
