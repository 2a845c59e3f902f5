"""Decimal, quantity and text normalization helpers for ledger inputs.

Quantities are whole units. Prices, cost bases and money amounts are
`Decimal` values quantized with banker's rounding so repeated
weighted-average updates do not drift.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from enum import Enum
from typing import TypeVar

from .errors import LedgerValidationError

PRICE_QUANTUM = Decimal("0.000001")
COST_BASIS_QUANTUM = Decimal("0.0000000001")
MONEY_QUANTUM = Decimal("0.01")
PERCENT_QUANTUM = Decimal("0.0001")

# Exclusive bounds of the NUMERIC and BIGINT ledger columns.
PRICE_LIMIT = Decimal("1e14")
COST_BASIS_LIMIT = Decimal("1e18")
MONEY_LIMIT = Decimal("1e18")
PERCENT_LIMIT = Decimal("1e8")
QUANTITY_MAX = 2**63 - 1

_EnumT = TypeVar("_EnumT", bound=Enum)


def domain_to_decimal(value: object, field_name: str) -> Decimal:
    """Convert one numeric input to a finite `Decimal`.

    Args:
        value: Decimal, int, float or numeric string.
        field_name: Field name for error reporting.

    Returns:
        Decimal: Finite decimal value.

    Raises:
        LedgerValidationError: Raised when the value is missing, boolean or not a finite number.
    """

    if value is None or isinstance(value, bool):
        raise LedgerValidationError(f"{field_name} must be a number")
    if isinstance(value, Decimal):
        decimal_value = value
    elif isinstance(value, int):
        decimal_value = Decimal(value)
    elif isinstance(value, float):
        decimal_value = Decimal(str(value))
    elif isinstance(value, str):
        try:
            decimal_value = Decimal(value.strip())
        except InvalidOperation as error:
            raise LedgerValidationError(f"{field_name} must be a number") from error
    else:
        raise LedgerValidationError(f"{field_name} must be a number")

    if not decimal_value.is_finite():
        raise LedgerValidationError(f"{field_name} must be finite")
    return decimal_value


def _domain_quantize(value: Decimal, quantum: Decimal, limit: Decimal, field_name: str) -> Decimal:
    """Quantize one value and reject results the ledger columns cannot store.

    Args:
        value: Value to round.
        quantum: Target exponent, such as `PRICE_QUANTUM`.
        limit: Exclusive bound on the absolute quantized value.
        field_name: Field name for error reporting.

    Returns:
        Decimal: Value rounded half-even to the quantum.

    Raises:
        LedgerValidationError: Raised when the value has too many digits or reaches the bound.
    """

    try:
        quantized_value = value.quantize(quantum, rounding=ROUND_HALF_EVEN)
    except InvalidOperation as error:
        raise LedgerValidationError(f"{field_name} is out of range; absolute value must be < {limit:f}") from error
    if abs(quantized_value) >= limit:
        raise LedgerValidationError(f"{field_name} is out of range; absolute value must be < {limit:f}")
    return quantized_value


def domain_quantize_price(value: Decimal, field_name: str = "price") -> Decimal:
    return _domain_quantize(value, PRICE_QUANTUM, PRICE_LIMIT, field_name)


def domain_quantize_cost_basis(value: Decimal, field_name: str = "cost_basis") -> Decimal:
    return _domain_quantize(value, COST_BASIS_QUANTUM, COST_BASIS_LIMIT, field_name)


def domain_quantize_money(value: Decimal, field_name: str = "amount") -> Decimal:
    return _domain_quantize(value, MONEY_QUANTUM, MONEY_LIMIT, field_name)


def domain_quantize_percent(value: Decimal, field_name: str = "percent") -> Decimal:
    return _domain_quantize(value, PERCENT_QUANTUM, PERCENT_LIMIT, field_name)


def domain_require_positive_price(value: object, field_name: str) -> Decimal:
    """Validate a strictly positive unit price and quantize it.

    Args:
        value: Candidate price.
        field_name: Field name for error reporting.

    Returns:
        Decimal: Quantized positive price.

    Raises:
        LedgerValidationError: Raised when the price is not a positive number.
    """

    price = domain_quantize_price(domain_to_decimal(value, field_name), field_name)
    if price <= Decimal("0"):
        raise LedgerValidationError(f"{field_name} must be > 0")
    return price


def domain_require_non_negative_price(value: object, field_name: str) -> Decimal:
    """Validate a zero-or-positive unit price or cost and quantize it."""

    price = domain_quantize_price(domain_to_decimal(value, field_name), field_name)
    if price < Decimal("0"):
        raise LedgerValidationError(f"{field_name} must be >= 0")
    return price


def domain_require_quantity(value: object, field_name: str, allow_zero: bool = False) -> int:
    """Validate a whole-unit quantity.

    Args:
        value: Candidate quantity.
        field_name: Field name for error reporting.
        allow_zero: Accept zero as a valid quantity.

    Returns:
        int: Validated quantity.

    Raises:
        LedgerValidationError: Raised when the value is not an integer or is out of range.
    """

    if isinstance(value, bool) or not isinstance(value, int):
        raise LedgerValidationError(f"{field_name} must be an integer")
    if allow_zero:
        if value < 0:
            raise LedgerValidationError(f"{field_name} must be >= 0")
    elif value <= 0:
        raise LedgerValidationError(f"{field_name} must be > 0")
    if value > QUANTITY_MAX:
        raise LedgerValidationError(f"{field_name} must be <= {QUANTITY_MAX}")
    return value


def domain_require_text(value: str | None, field_name: str) -> str:
    """Validate required text input and return the stripped value.

    Raises:
        LedgerValidationError: Raised when the value is missing or blank.
    """

    if value is None:
        raise LedgerValidationError(f"{field_name} must not be blank")
    stripped_value = value.strip()
    if not stripped_value:
        raise LedgerValidationError(f"{field_name} must not be blank")
    return stripped_value


def domain_normalize_optional_text(value: str | None) -> str | None:
    """Strip optional text, mapping blank values to None."""

    if value is None:
        return None
    stripped_value = value.strip()
    return stripped_value or None


def domain_parse_enum(
    enum_type: type[_EnumT],
    value: object,
    field_name: str,
    error_type: type[LedgerValidationError] = LedgerValidationError,
) -> _EnumT:
    """Parse a member of a string-valued enumeration.

    Args:
        enum_type: Target enumeration class.
        value: Member or case-insensitive member value.
        field_name: Field name for error reporting.
        error_type: Validation error class raised on failure.

    Returns:
        Enum: Matching enumeration member.

    Raises:
        LedgerValidationError: Raised (as `error_type`) when the value is not a member.
    """

    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        try:
            return enum_type(value.strip().upper())
        except ValueError:
            pass
    allowed_values = ", ".join(str(member.value) for member in enum_type)
    raise error_type(f"unsupported {field_name}={value}; expected one of: {allowed_values}")
