import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from time import time
from typing import Optional
from uuid import uuid4

from .models import LineItem, Menu, Transaction
from .storage import TRANSACTIONS_KEY, LedgerStorage

logger = logging.getLogger(__name__)


def generate_transaction_id() -> str:
    # Millisecond clock plus a random suffix keeps ids unique within one tick.
    return f"{int(time() * 1000)}-{uuid4().hex[:8]}"


class TransactionLog:
    """Append-only log shared by both menus, tagged per record with its menu."""

    def __init__(self, storage: LedgerStorage):
        self.storage = storage

    def load(self) -> list[Transaction]:
        raw = self.storage.load(TRANSACTIONS_KEY) or []
        return [Transaction(**record) for record in raw]

    def save(self, transactions: list[Transaction]) -> None:
        self.storage.save(TRANSACTIONS_KEY, [t.model_dump() for t in transactions])

    def append(
        self,
        menu: Menu,
        user: str,
        lines: list[LineItem],
        total: Decimal,
        balance_after: Decimal,
    ) -> Transaction:
        transaction = Transaction(
            id=generate_transaction_id(),
            timestamp=datetime.now(timezone.utc),
            menu=menu,
            user=user,
            lines=lines,
            total=total,
            balance_after=balance_after,
            refunded=False,
        )
        with self.locked():
            transactions = self.load()
            transactions.append(transaction)
            self.save(transactions)
        logger.info("Recorded transaction %s for '%s' on %s menu", transaction.id, user, menu.value)
        return transaction

    def entries(self) -> list[Transaction]:
        return self.load()

    def get(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self.load():
            if transaction.id == transaction_id:
                return transaction
        return None

    def locked(self):
        return self.storage.locked(TRANSACTIONS_KEY)

    def report_by_user(self, menu: Optional[Menu] = None) -> dict[str, Decimal]:
        totals: dict[str, Decimal] = defaultdict(Decimal)
        for transaction in self._billable(menu):
            totals[transaction.user] += transaction.total
        return dict(totals)

    def report_by_product(self, menu: Optional[Menu] = None) -> dict[str, int]:
        quantities: dict[str, int] = defaultdict(int)
        for transaction in self._billable(menu):
            for line in transaction.lines:
                quantities[line.product] += line.qty
        return dict(quantities)

    def _billable(self, menu: Optional[Menu]) -> list[Transaction]:
        return [
            t for t in self.load()
            if not t.refunded and (menu is None or t.menu == menu)
        ]
