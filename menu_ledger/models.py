from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional, Union
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict, PlainSerializer


def _money_to_json(value: Decimal) -> Union[int, float]:
    return int(value) if value == value.to_integral_value() else float(value)


# Decimal in Python, a plain JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(_money_to_json, return_type=Union[int, float], when_used="json")]


def _require_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError("must be a number")
    return value


# Request amounts must arrive as JSON numbers; numeric strings are refused.
Amount = Annotated[Money, BeforeValidator(_require_number)]


class Menu(str, Enum):
    GENERAL = "general"
    TEAM = "team"


class CatalogEntry(BaseModel):
    price: Money = Field(..., ge=0)
    sold: int = 0
    image: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LineItem(BaseModel):
    product: str
    qty: int
    unit_price: Money
    line_total: Money


class PricedOrder(BaseModel):
    lines: list[LineItem]
    total: Money


class Transaction(BaseModel):
    id: str
    timestamp: datetime
    menu: Menu
    user: str
    lines: list[LineItem]
    total: Money
    balance_after: Money
    refunded: bool = False
    refunded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def recomputed_total(self) -> Decimal:
        return sum((line.qty * line.unit_price for line in self.lines), Decimal("0"))

    def can_refund(self) -> bool:
        return not self.refunded


class SetBalanceRequest(BaseModel):
    name: str = Field(..., min_length=1)
    balance: Amount

    model_config = ConfigDict(json_schema_extra={
        "example": {"name": "alice", "balance": 10}
    })


class UpsertProductRequest(BaseModel):
    name: str = Field(..., min_length=1)
    price: Amount = Field(..., ge=0)
    image: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {"name": "soda", "price": 2.5}
    })


class PlaceOrderRequest(BaseModel):
    buyer: str = Field(..., min_length=1)
    items: dict[str, Any] = Field(..., description="Product name to requested quantity")

    model_config = ConfigDict(json_schema_extra={
        "example": {"buyer": "alice", "items": {"soda": 3}}
    })


class RecordSoldRequest(BaseModel):
    products_sold: dict[str, Any] = Field(..., alias="productsSold")

    model_config = ConfigDict(populate_by_name=True, json_schema_extra={
        "example": {"productsSold": {"snickers": 5, "beer": 10}}
    })


class BalanceResponse(BaseModel):
    name: str
    balance: Money


class OrderResponse(BaseModel):
    balance: Money
    transaction: Transaction


class MessageResponse(BaseModel):
    message: str
