import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from .errors import InvalidInputError, NotFoundError
from .models import CatalogEntry, LineItem, PricedOrder

logger = logging.getLogger(__name__)

MAX_QUANTITY = 1_000_000


@dataclass(frozen=True)
class ParsedQuantity:
    """Outcome of reading one requested quantity from loosely typed input."""

    raw: Any
    value: int
    valid: bool
    reason: Optional[str] = None


def parse_quantity(raw: Any) -> ParsedQuantity:
    """Classify a requested quantity as a valid non-negative number or invalid.

    Numeric strings are accepted. Booleans, ``None``, non-numeric strings,
    NaN/infinity, negative or fractional numbers and anything above
    ``MAX_QUANTITY`` are invalid and carry a value of 0.
    """
    if raw is None:
        return ParsedQuantity(raw, 0, False, "missing")
    if isinstance(raw, bool):
        return ParsedQuantity(raw, 0, False, "not a number")
    if isinstance(raw, str):
        raw_text = raw.strip()
        if not raw_text:
            return ParsedQuantity(raw, 0, False, "missing")
    else:
        raw_text = raw
    try:
        number = Decimal(str(raw_text)) if isinstance(raw_text, float) else Decimal(raw_text)
    except (InvalidOperation, TypeError, ValueError):
        return ParsedQuantity(raw, 0, False, "not a number")
    if not number.is_finite():
        return ParsedQuantity(raw, 0, False, "not a number")
    if number < 0:
        return ParsedQuantity(raw, 0, False, "negative")
    # Bounded before int() so a huge exponent never expands into digits.
    if number > MAX_QUANTITY:
        return ParsedQuantity(raw, 0, False, "too large")
    if number != number.to_integral_value():
        return ParsedQuantity(raw, 0, False, "not a whole number")
    return ParsedQuantity(raw, int(number), True)


def price_items(
    items: Mapping[str, Any],
    catalog: Mapping[str, CatalogEntry],
    strict: bool = False,
) -> PricedOrder:
    """Price a product -> quantity request against a catalog snapshot.

    Zero quantities are dropped. In lenient mode invalid quantities count as
    zero; in strict mode they raise ``InvalidInputError``. Any product missing from
    the catalog raises ``NotFoundError`` and nothing is returned. The
    catalog is never modified.
    """
    lines: list[LineItem] = []
    for product, raw_qty in items.items():
        parsed = parse_quantity(raw_qty)
        if not parsed.valid:
            if strict:
                raise InvalidInputError(
                    f"Invalid quantity {raw_qty!r} for product '{product}': {parsed.reason}"
                )
            logger.warning("Treating quantity %r for '%s' as 0 (%s)", raw_qty, product, parsed.reason)
        if parsed.value == 0:
            continue

        entry = catalog.get(product)
        if entry is None:
            raise NotFoundError("product", product)

        unit_price = entry.price
        lines.append(LineItem(
            product=product,
            qty=parsed.value,
            unit_price=unit_price,
            line_total=parsed.value * unit_price,
        ))

    total = sum((line.line_total for line in lines), Decimal("0"))
    return PricedOrder(lines=lines, total=total)
