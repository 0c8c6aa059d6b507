import copy
import json
import logging
import os
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterator, Optional

from .errors import StorageError
from .models import Menu

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "transactions"


def balances_key(menu: Menu) -> str:
    return f"balances:{menu.value}"


def catalog_key(menu: Menu) -> str:
    return f"catalog:{menu.value}"


class LedgerStorage:
    """Whole-record load/save keyed by partition name.

    Every read-modify-write in the service runs inside ``locked(...)`` so two
    threads touching the same partition cannot interleave their writes.
    """

    def __init__(self):
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def load(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def save(self, key: str, record: Any) -> None:
        raise NotImplementedError

    def _lock_for(self, key: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def locked(self, *keys: str) -> Iterator[None]:
        # Sorted acquisition keeps the lock order identical for every caller.
        locks = [self._lock_for(key) for key in sorted(set(keys))]
        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()


class InMemoryStorage(LedgerStorage):
    def __init__(self, seed: Optional[dict[str, Any]] = None):
        super().__init__()
        self.records: dict[str, Any] = {}
        for key, record in (seed or {}).items():
            self.save(key, record)

    def load(self, key: str) -> Optional[Any]:
        record = self.records.get(key)
        return copy.deepcopy(record) if record is not None else None

    def save(self, key: str, record: Any) -> None:
        self.records[key] = copy.deepcopy(record)


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonFileStorage(LedgerStorage):
    """One pretty-printed JSON file per partition under ``data_dir``.

    Writes go to a temporary file that is renamed over the target, so a
    crashed write never leaves a truncated record behind.
    """

    def __init__(self, data_dir: str):
        super().__init__()
        self.data_dir = data_dir

    def path_for(self, key: str) -> str:
        return os.path.join(self.data_dir, key.replace(":", "_") + ".json")

    def load(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f, parse_float=Decimal)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to read %s: %s", path, e)
            raise StorageError(key, str(e)) from e

    def save(self, key: str, record: Any) -> None:
        path = self.path_for(key)
        tmp = path + ".tmp"
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2, ensure_ascii=False, default=_encode)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write %s: %s", path, e)
            raise StorageError(key, str(e)) from e
