import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    storage: str = "json"
    data_dir: str = "data"
    log_file: Optional[str] = "log.txt"
    log_level: str = "INFO"
    strict_quantities: bool = False
    total_epsilon: Decimal = Decimal("0.000001")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            storage=os.getenv("MENU_LEDGER_STORAGE", "json").lower(),
            data_dir=os.getenv("MENU_LEDGER_DATA_DIR", "data"),
            log_file=os.getenv("MENU_LEDGER_LOG_FILE", "log.txt") or None,
            log_level=os.getenv("MENU_LEDGER_LOG_LEVEL", "INFO").upper(),
            strict_quantities=_env_flag("MENU_LEDGER_STRICT_QUANTITIES"),
            total_epsilon=Decimal(os.getenv("MENU_LEDGER_TOTAL_EPSILON", "0.000001")),
        )


class _UTCFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created, timezone.utc).isoformat()


def configure_logging(settings: Settings) -> None:
    """Log to stderr and, when configured, append "<timestamp> - <message>" lines to a file.

    Calling it again replaces the handlers a previous call installed.
    """
    root = logging.getLogger("menu_ledger")
    root.setLevel(settings.log_level)
    for handler in [h for h in root.handlers if getattr(h, "_menu_ledger", False)]:
        root.removeHandler(handler)
        handler.close()

    stream = logging.StreamHandler()
    stream._menu_ledger = True
    stream.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(stream)

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8", delay=True)
        file_handler.setFormatter(_UTCFormatter("%(asctime)s - %(message)s"))
        file_handler._menu_ledger = True
        root.addHandler(file_handler)
