from decimal import Decimal


class LedgerServiceError(Exception):
    pass


class InvalidInputError(LedgerServiceError):
    pass


class NotFoundError(LedgerServiceError):
    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind.capitalize()} '{key}' not found")


class InsufficientFundsError(LedgerServiceError):
    def __init__(self, user: str, balance: Decimal, total: Decimal):
        self.user = user
        self.balance = balance
        self.total = total
        super().__init__(f"Insufficient funds for '{user}': balance {balance}, order total {total}")


class AlreadyRefundedError(LedgerServiceError):
    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction '{transaction_id}' is already refunded")


class StorageError(LedgerServiceError):
    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(f"Storage failure on '{key}': {reason}")
