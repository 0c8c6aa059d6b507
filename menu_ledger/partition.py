from decimal import Decimal

from .models import CatalogEntry, Menu
from .storage import LedgerStorage, balances_key, catalog_key


class Partition:
    """Balances and catalog of one menu, read and written through the store."""

    def __init__(self, menu: Menu, storage: LedgerStorage):
        self.menu = menu
        self.storage = storage
        self.balances_key = balances_key(menu)
        self.catalog_key = catalog_key(menu)

    def load_balances(self) -> dict[str, Decimal]:
        raw = self.storage.load(self.balances_key) or {}
        return {name: Decimal(str(balance)) for name, balance in raw.items()}

    def save_balances(self, balances: dict[str, Decimal]) -> None:
        self.storage.save(self.balances_key, dict(balances))

    def load_catalog(self) -> dict[str, CatalogEntry]:
        raw = self.storage.load(self.catalog_key) or {}
        return {name: CatalogEntry(**entry) for name, entry in raw.items()}

    def save_catalog(self, catalog: dict[str, CatalogEntry]) -> None:
        self.storage.save(
            self.catalog_key,
            {name: entry.model_dump(exclude_none=True) for name, entry in catalog.items()},
        )

    def locked(self):
        return self.storage.locked(self.balances_key, self.catalog_key)
