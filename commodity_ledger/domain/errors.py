"""Project-native typed exceptions for ledger command failures.

Every failure a ledger command can raise belongs to one of five families:
validation, not-found, state, capacity and integrity. The store adds one
more, `LedgerConcurrencyConflictError`, for transaction conflicts that a caller
may retry.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base exception for ledger command failures.

    Attributes:
        error_code: Stable machine-readable failure code.
    """

    error_code = "LEDGER_ERROR"

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code


class LedgerValidationError(LedgerError, ValueError):
    """Input rejected before any write."""

    error_code = "VALIDATION_FAILED"


class InvalidDateRangeError(LedgerValidationError):
    """Contract end date is not strictly after its start date."""

    error_code = "INVALID_DATE_RANGE"


class InvalidMovementKindError(LedgerValidationError):
    """Inventory movement kind is not IN, OUT or ADJUSTMENT."""

    error_code = "INVALID_MOVEMENT_KIND"


class DuplicateReferenceDataError(LedgerValidationError):
    """Unique business key (name, tracking number) already exists."""

    error_code = "DUPLICATE_REFERENCE"


class LedgerNotFoundError(LedgerError, LookupError):
    """Referenced ledger row does not exist."""

    error_code = "NOT_FOUND"


class CommodityNotFoundError(LedgerNotFoundError):
    error_code = "COMMODITY_NOT_FOUND"


class CounterpartyNotFoundError(LedgerNotFoundError):
    error_code = "COUNTERPARTY_NOT_FOUND"


class LotNotFoundError(LedgerNotFoundError):
    error_code = "LOT_NOT_FOUND"


class TradeNotFoundError(LedgerNotFoundError):
    error_code = "TRADE_NOT_FOUND"


class ContractNotFoundError(LedgerNotFoundError):
    error_code = "CONTRACT_NOT_FOUND"


class ShipmentNotFoundError(LedgerNotFoundError):
    error_code = "SHIPMENT_NOT_FOUND"


class LedgerStateError(LedgerError):
    """Operation attempted from a lifecycle state that does not permit it."""

    error_code = "INVALID_STATE"


class InvalidTradeStateError(LedgerStateError):
    error_code = "INVALID_TRADE_STATE"


class InvalidContractStateError(LedgerStateError):
    error_code = "INVALID_CONTRACT_STATE"


class InvalidShipmentStateError(LedgerStateError):
    error_code = "INVALID_SHIPMENT_STATE"


class LedgerCapacityError(LedgerError):
    """Insufficient inventory, credit or contract balance."""

    error_code = "CAPACITY_EXCEEDED"


class CreditLimitExceededError(LedgerCapacityError):
    error_code = "CREDIT_LIMIT_EXCEEDED"


class InsufficientInventoryError(LedgerCapacityError):
    """Candidate lots cannot cover a sell-side quantity."""

    error_code = "INSUFFICIENT_INVENTORY"


class InsufficientQuantityError(LedgerCapacityError):
    """One lot cannot cover an OUT movement."""

    error_code = "INSUFFICIENT_QUANTITY"


class ExceedsRemainingBalanceError(LedgerCapacityError):
    error_code = "EXCEEDS_REMAINING_BALANCE"


class LedgerIntegrityError(LedgerError):
    """A resulting quantity or balance would violate a ledger invariant."""

    error_code = "INTEGRITY_VIOLATION"


class NegativeResultingQuantityError(LedgerIntegrityError):
    error_code = "NEGATIVE_RESULTING_QUANTITY"


class LedgerConcurrencyConflictError(LedgerError, RuntimeError):
    """Transaction lost a serialization, deadlock or unique-key race."""

    error_code = "CONCURRENCY_CONFLICT"
