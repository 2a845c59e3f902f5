"""Pure counterparty credit rules for trade creation, amendment and cancellation.

Callers read the counterparty with a row lock in the same unit of work as
the trade mutation and persist the returned exposure; nothing here touches
storage.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from commodity_ledger.db.interfaces import CounterpartyExposureUpdate, CounterpartyRecord
from commodity_ledger.domain.errors import CreditLimitExceededError, LedgerValidationError
from commodity_ledger.domain.values import QUANTITY_MAX, domain_quantize_money

_ZERO = Decimal("0")


def credit_available(counterparty: CounterpartyRecord) -> Decimal:
    """Return the unreserved credit of one counterparty, never negative."""

    return max(_ZERO, domain_quantize_money(counterparty.credit_limit - counterparty.credit_used))


def _credit_require_within_limit(counterparty: CounterpartyRecord, new_credit_used: Decimal, required: Decimal) -> Decimal:
    if new_credit_used > counterparty.credit_limit:
        raise CreditLimitExceededError(
            f"credit limit exceeded for counterparty {counterparty.counterparty_id}: "
            f"available={credit_available(counterparty)} required={domain_quantize_money(required)}"
        )
    return domain_quantize_money(new_credit_used, "credit_used")


def _credit_require_volume(counterparty: CounterpartyRecord, new_total_volume: int) -> int:
    if new_total_volume > QUANTITY_MAX:
        raise LedgerValidationError(
            f"total traded volume of counterparty {counterparty.counterparty_id} would exceed {QUANTITY_MAX}"
        )
    return new_total_volume


def credit_reserve_trade(
    counterparty: CounterpartyRecord,
    total_value: Decimal,
    quantity: int,
    traded_at_utc: datetime,
) -> CounterpartyExposureUpdate:
    """Reserve credit for a new trade.

    Args:
        counterparty: Counterparty row read under lock.
        total_value: Trade total value.
        quantity: Trade quantity added to the traded volume.
        traded_at_utc: Trade timestamp recorded as the last trade date.

    Returns:
        CounterpartyExposureUpdate: Exposure after the reservation.

    Raises:
        CreditLimitExceededError: Raised when the reservation would exceed the credit limit.
        LedgerValidationError: Raised when the traded volume would overflow.
    """

    return CounterpartyExposureUpdate(
        credit_used=_credit_require_within_limit(counterparty, counterparty.credit_used + total_value, total_value),
        total_trades=counterparty.total_trades + 1,
        total_volume=_credit_require_volume(counterparty, counterparty.total_volume + quantity),
        last_trade_date=traded_at_utc,
    )


def credit_adjust_trade(
    counterparty: CounterpartyRecord,
    previous_total_value: Decimal,
    previous_quantity: int,
    total_value: Decimal,
    quantity: int,
) -> CounterpartyExposureUpdate:
    """Swap the reservation of an amended OPEN trade for its new terms.

    The previous reservation is released (floored at zero) before the new
    one is checked against the limit, so lowering a trade's value always
    succeeds. The trade count and last trade date are unchanged.

    Raises:
        CreditLimitExceededError: Raised when the new terms would exceed the credit limit.
        LedgerValidationError: Raised when the traded volume would overflow.
    """

    released_credit_used = max(_ZERO, counterparty.credit_used - previous_total_value)
    released_total_volume = max(0, counterparty.total_volume - previous_quantity)
    required = max(_ZERO, total_value - previous_total_value)
    return CounterpartyExposureUpdate(
        credit_used=_credit_require_within_limit(counterparty, released_credit_used + total_value, required),
        total_trades=counterparty.total_trades,
        total_volume=_credit_require_volume(counterparty, released_total_volume + quantity),
        last_trade_date=counterparty.last_trade_date,
    )


def credit_release_trade(
    counterparty: CounterpartyRecord,
    total_value: Decimal,
    quantity: int,
) -> CounterpartyExposureUpdate:
    """Release the credit and counters reserved by a cancelled trade, each floored at zero."""

    return CounterpartyExposureUpdate(
        credit_used=max(_ZERO, domain_quantize_money(counterparty.credit_used - total_value)),
        total_trades=max(0, counterparty.total_trades - 1),
        total_volume=max(0, counterparty.total_volume - quantity),
        last_trade_date=counterparty.last_trade_date,
    )
