import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, configure_logging
from .models import (
    BalanceResponse, CatalogEntry, Menu, MessageResponse, Money, OrderResponse,
    PlaceOrderRequest, RecordSoldRequest, SetBalanceRequest, Transaction,
    UpsertProductRequest,
)
from .service import (
    LedgerService, LedgerServiceError, InvalidInputError, NotFoundError,
    InsufficientFundsError, AlreadyRefundedError, StorageError,
)
from .storage import InMemoryStorage, JsonFileStorage

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientFundsError, status.HTTP_402_PAYMENT_REQUIRED),
    (AlreadyRefundedError, status.HTTP_409_CONFLICT),
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def to_http_error(error: LedgerServiceError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))


def build_service(settings: Settings) -> LedgerService:
    if settings.storage == "memory":
        storage = InMemoryStorage()
    else:
        storage = JsonFileStorage(settings.data_dir)
    return LedgerService(
        storage,
        strict_quantities=settings.strict_quantities,
        total_epsilon=settings.total_epsilon,
    )


def create_app(ledger_service: Optional[LedgerService] = None, settings: Optional[Settings] = None) -> FastAPI:
    if ledger_service is None:
        settings = settings or Settings.from_env()
        configure_logging(settings)
        ledger_service = build_service(settings)

    app = FastAPI(
        title="Menu Ledger API",
        description="Prepaid balances, catalog, orders, refunds and sales reports for the general and team menus",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.ledger_service = ledger_service

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "menu-ledger"}

    # Registered ahead of the /{menu}/... routes so "reports" is never read as a menu.
    @app.get("/reports/users", tags=["Reports"])
    def report_by_user(menu: Optional[Menu] = None) -> dict[str, Money]:
        try:
            return ledger_service.report_by_user(menu)
        except LedgerServiceError as e:
            raise to_http_error(e)

    @app.get("/reports/products", tags=["Reports"])
    def report_by_product(menu: Optional[Menu] = None) -> dict[str, int]:
        try:
            return ledger_service.report_by_product(menu)
        except LedgerServiceError as e:
            raise to_http_error(e)

    @app.get("/{menu}/people", tags=["People"])
    def list_people(menu: Menu) -> dict[str, Money]:
        try:
            return ledger_service.list_balances(menu)
        except LedgerServiceError as e:
            raise to_http_error(e)

    @app.get("/{menu}/people/{name}", response_model=BalanceResponse, tags=["People"])
    def get_person(menu: Menu, name: str) -> BalanceResponse:
        try:
            return BalanceResponse(name=name, balance=ledger_service.get_balance(menu, name))
        except LedgerServiceError as e:
            raise to_http_error(e)

    @app.put("/{menu}/people", response_model=BalanceResponse, tags=["People"])
    def set_person_balance(menu: Menu, request: SetBalanceRequest) -> BalanceResponse:
        try:
            balance = ledger_service.set_balance(menu, request.name, request.balance)
        except LedgerServiceError as e:
            raise to_http_error(e)
        return BalanceResponse(name=request.name, balance=balance)

    @app.get("/{menu}/products", response_model=dict[str, CatalogEntry], tags=["Products"])
    def list_products(menu: Menu) -> dict[str, CatalogEntry]:
        try:
            return ledger_service.get_catalog(menu)
        except LedgerServiceError as e:
            raise to_http_error(e)

    @app.put("/{menu}/products", response_model=CatalogEntry, tags=["Products"])
    def upsert_product(menu: Menu, request: UpsertProductRequest) -> CatalogEntry:
        try:
            return ledger_service.upsert_product(menu, request.name, request.price, request.image)
        except LedgerServiceError as e:
            raise to_http_error(e)

    @app.delete("/{menu}/products/{name}", response_model=MessageResponse, tags=["Products"])
    def delete_product(menu: Menu, name: str) -> MessageResponse:
        try:
            ledger_service.delete_product(menu, name)
        except LedgerServiceError as e:
            raise to_http_error(e)
        return MessageResponse(message=f"Product '{name}' deleted")

    @app.post("/{menu}/products/sold", response_model=MessageResponse, tags=["Products"])
    def record_sold(menu: Menu, request: RecordSoldRequest) -> MessageResponse:
        try:
            ledger_service.record_sold(menu, request.products_sold)
        except LedgerServiceError as e:
            raise to_http_error(e)
        return MessageResponse(message="Sold counts updated successfully")

    @app.post("/{menu}/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED, tags=["Orders"])
    def place_order(menu: Menu, request: PlaceOrderRequest) -> OrderResponse:
        try:
            return ledger_service.place_order(menu, request.buyer, request.items)
        except LedgerServiceError as e:
            raise to_http_error(e)

    @app.get("/transactions", response_model=list[Transaction], tags=["Transactions"])
    def list_transactions() -> list[Transaction]:
        try:
            return ledger_service.list_transactions()
        except LedgerServiceError as e:
            raise to_http_error(e)

    @app.get("/transactions/{transaction_id}", response_model=Transaction, tags=["Transactions"])
    def get_transaction(transaction_id: str) -> Transaction:
        try:
            return ledger_service.get_transaction(transaction_id)
        except LedgerServiceError as e:
            raise to_http_error(e)

    @app.post("/transactions/{transaction_id}/refund", response_model=Transaction, tags=["Transactions"])
    def refund_transaction(transaction_id: str) -> Transaction:
        try:
            return ledger_service.refund(transaction_id)
        except LedgerServiceError as e:
            raise to_http_error(e)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
