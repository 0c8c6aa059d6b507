import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from .errors import (
    AlreadyRefundedError,
    InsufficientFundsError,
    InvalidInputError,
    LedgerServiceError,
    NotFoundError,
    StorageError,
)
from .models import CatalogEntry, Menu, OrderResponse, Transaction
from .partition import Partition
from .pricing import parse_quantity, price_items
from .storage import TRANSACTIONS_KEY, InMemoryStorage, LedgerStorage
from .transactions import TransactionLog

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_EPSILON = Decimal("0.000001")

__all__ = [
    "LedgerService",
    "LedgerServiceError",
    "InvalidInputError",
    "NotFoundError",
    "InsufficientFundsError",
    "AlreadyRefundedError",
    "StorageError",
]


def _require_name(value: Any, field: str = "name") -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"'{field}' must be a non-empty string")
    return value


def _require_amount(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidInputError(f"'{field}' must be a number")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except InvalidOperation:
        raise InvalidInputError(f"'{field}' must be a number")
    if not amount.is_finite():
        raise InvalidInputError(f"'{field}' must be a finite number")
    return amount


def _require_mapping(value: Any, field: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidInputError(f"'{field}' must be a mapping of product name to quantity")
    return value


class LedgerService:
    """Balances, catalog, orders and refunds for every menu over one store.

    The order and refund algorithms are written once and run against the
    ``Partition`` of whichever menu the request (or transaction) names.
    """

    def __init__(
        self,
        storage: Optional[LedgerStorage] = None,
        strict_quantities: bool = False,
        total_epsilon: Decimal = DEFAULT_TOTAL_EPSILON,
    ):
        self.storage = storage or InMemoryStorage()
        self.strict_quantities = strict_quantities
        self.total_epsilon = total_epsilon
        self.partitions = {menu: Partition(menu, self.storage) for menu in Menu}
        self.log = TransactionLog(self.storage)

    def partition(self, menu: Menu) -> Partition:
        try:
            return self.partitions[Menu(menu)]
        except ValueError:
            raise InvalidInputError(f"Unknown menu '{menu}'")

    # Balances

    def list_balances(self, menu: Menu) -> dict[str, Decimal]:
        return self.partition(menu).load_balances()

    def get_balance(self, menu: Menu, name: str) -> Decimal:
        balances = self.partition(menu).load_balances()
        if name not in balances:
            raise NotFoundError("person", name)
        return balances[name]

    def set_balance(self, menu: Menu, name: str, balance: Any) -> Decimal:
        name = _require_name(name)
        amount = _require_amount(balance, "balance")
        partition = self.partition(menu)
        with partition.locked():
            balances = partition.load_balances()
            balances[name] = amount
            partition.save_balances(balances)
        logger.info("%s's balance set to %s on %s menu", name, amount, partition.menu.value)
        return amount

    # Catalog

    def get_catalog(self, menu: Menu) -> dict[str, CatalogEntry]:
        return self.partition(menu).load_catalog()

    def upsert_product(self, menu: Menu, name: str, price: Any, image: Optional[str] = None) -> CatalogEntry:
        name = _require_name(name)
        amount = _require_amount(price, "price")
        if amount < 0:
            raise InvalidInputError("'price' must not be negative")
        if image is not None and not isinstance(image, str):
            raise InvalidInputError("'image' must be a string")

        partition = self.partition(menu)
        with partition.locked():
            catalog = partition.load_catalog()
            existing = catalog.get(name)
            entry = CatalogEntry(
                price=amount,
                sold=existing.sold if existing else 0,
                image=image if image is not None else (existing.image if existing else None),
            )
            catalog[name] = entry
            partition.save_catalog(catalog)
        logger.info("Product '%s' %s at %s on %s menu",
                    name, "updated" if existing else "added", amount, partition.menu.value)
        return entry

    def delete_product(self, menu: Menu, name: str) -> None:
        partition = self.partition(menu)
        with partition.locked():
            catalog = partition.load_catalog()
            if name not in catalog:
                raise NotFoundError("product", name)
            del catalog[name]
            partition.save_catalog(catalog)
        logger.info("Product '%s' removed from %s menu", name, partition.menu.value)

    def record_sold(self, menu: Menu, products_sold: Any) -> dict[str, CatalogEntry]:
        products_sold = _require_mapping(products_sold, "productsSold")
        partition = self.partition(menu)
        with partition.locked():
            catalog = partition.load_catalog()
            increments = {}
            for product, raw_count in products_sold.items():
                parsed = parse_quantity(raw_count)
                if not parsed.valid:
                    raise InvalidInputError(
                        f"Invalid sold count {raw_count!r} for product '{product}': {parsed.reason}"
                    )
                if product not in catalog:
                    raise NotFoundError("product", product)
                increments[product] = parsed.value

            for product, count in increments.items():
                entry = catalog[product]
                entry.sold = max(entry.sold, 0) + count
                logger.info("sold %s %s on %s menu", entry.sold, product, partition.menu.value)
            partition.save_catalog(catalog)
        return catalog

    # Orders

    def place_order(self, menu: Menu, buyer: str, items: Any) -> OrderResponse:
        buyer = _require_name(buyer, "buyer")
        items = _require_mapping(items, "items")
        partition = self.partition(menu)

        with partition.locked():
            balances = partition.load_balances()
            if buyer not in balances:
                raise NotFoundError("person", buyer)

            catalog = partition.load_catalog()
            priced = price_items(items, catalog, strict=self.strict_quantities)

            balance = balances[buyer]
            if priced.total > balance:
                logger.info("Order by '%s' on %s menu rejected: total %s exceeds balance %s",
                            buyer, partition.menu.value, priced.total, balance)
                raise InsufficientFundsError(buyer, balance, priced.total)

            for line in priced.lines:
                entry = catalog[line.product]
                entry.sold = max(entry.sold, 0) + line.qty
            new_balance = balance - priced.total
            balances[buyer] = new_balance

            partition.save_balances(balances)
            partition.save_catalog(catalog)

            transaction = self.log.append(
                menu=partition.menu,
                user=buyer,
                lines=priced.lines,
                total=priced.total,
                balance_after=new_balance,
            )

        logger.info("'%s' spent %s on %s menu, balance now %s",
                    buyer, priced.total, partition.menu.value, new_balance)
        return OrderResponse(balance=new_balance, transaction=transaction)

    # Refunds

    def refund(self, transaction_id: str) -> Transaction:
        found = self.log.get(transaction_id)
        if found is None:
            raise NotFoundError("transaction", transaction_id)
        partition = self.partition(found.menu)

        with self.storage.locked(partition.balances_key, partition.catalog_key, TRANSACTIONS_KEY):
            transactions = self.log.load()
            transaction = next((t for t in transactions if t.id == transaction_id), None)
            if transaction is None:
                raise NotFoundError("transaction", transaction_id)
            if not transaction.can_refund():
                raise AlreadyRefundedError(transaction_id)

            owed = transaction.recomputed_total()
            if abs(transaction.total - owed) > self.total_epsilon:
                logger.warning("Transaction %s stored total %s disagrees with its lines (%s); correcting",
                               transaction_id, transaction.total, owed)
                transaction.total = owed

            balances = partition.load_balances()
            if transaction.user not in balances:
                raise NotFoundError("user", transaction.user)
            balances[transaction.user] += owed

            catalog = partition.load_catalog()
            for line in transaction.lines:
                entry = catalog.get(line.product)
                if entry is None:
                    logger.info("Product '%s' no longer on %s menu; sold count not reversed",
                                line.product, partition.menu.value)
                    continue
                entry.sold = max(entry.sold - line.qty, 0)

            partition.save_balances(balances)
            partition.save_catalog(catalog)

            transaction.refunded = True
            transaction.refunded_at = datetime.now(timezone.utc)
            self.log.save(transactions)

        logger.info("Refunded transaction %s: %s credited to '%s' on %s menu",
                    transaction_id, owed, transaction.user, partition.menu.value)
        return transaction

    # Log and reports

    def list_transactions(self) -> list[Transaction]:
        return self.log.entries()

    def get_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.log.get(transaction_id)
        if transaction is None:
            raise NotFoundError("transaction", transaction_id)
        return transaction

    def report_by_user(self, menu: Optional[Menu] = None) -> dict[str, Decimal]:
        return self.log.report_by_user(self.partition(menu).menu if menu is not None else None)

    def report_by_product(self, menu: Optional[Menu] = None) -> dict[str, int]:
        return self.log.report_by_product(self.partition(menu).menu if menu is not None else None)
