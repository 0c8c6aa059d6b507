"""
Point-of-Sale Ledger for the General and Team Menus

This module provides:
- Prepaid per-person balances and a product catalog with sold counters, per menu
- Order placement that prices lines, debits the buyer and records a transaction
- Refunds that credit the price paid and reverse sold counts
- Spend-per-user and quantity-per-product reports over non-refunded orders
"""

from .models import (
    Menu,
    CatalogEntry,
    LineItem,
    Transaction,
)
from .errors import (
    LedgerServiceError,
    InvalidInputError,
    NotFoundError,
    InsufficientFundsError,
    AlreadyRefundedError,
    StorageError,
)
from .service import LedgerService
from .storage import InMemoryStorage, JsonFileStorage

__all__ = [
    "Menu",
    "CatalogEntry",
    "LineItem",
    "Transaction",
    "LedgerService",
    "LedgerServiceError",
    "InvalidInputError",
    "NotFoundError",
    "InsufficientFundsError",
    "AlreadyRefundedError",
    "StorageError",
    "InMemoryStorage",
    "JsonFileStorage",
]
