"""Commodity and counterparty reference-data commands."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from commodity_ledger.db.interfaces import (
    CommodityInsertRequest,
    CommodityRecord,
    CounterpartyInsertRequest,
    CounterpartyRecord,
)
from commodity_ledger.domain.errors import (
    CommodityNotFoundError,
    CounterpartyNotFoundError,
    DuplicateReferenceDataError,
    LedgerValidationError,
)
from commodity_ledger.domain.values import (
    domain_quantize_money,
    domain_quantize_percent,
    domain_quantize_price,
    domain_require_positive_price,
    domain_require_text,
    domain_to_decimal,
)

from .command_logging import ledger_log_rejections
from .credit_control import credit_available
from .interfaces import (
    CommodityCreateRequest,
    CommodityPriceUpdateResult,
    CounterpartyCreateRequest,
    CounterpartyCreditAssessmentRequest,
    CounterpartyCreditAssessmentResult,
    LedgerUnitOfWorkFactory,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _reference_require_credit_limit(value: object) -> Decimal:
    credit_limit = domain_quantize_money(domain_to_decimal(value, "credit_limit"), "credit_limit")
    if credit_limit < _ZERO:
        raise LedgerValidationError("credit_limit must be >= 0")
    return credit_limit


class ReferenceDataService:
    """Reference-data command service over a unit-of-work factory."""

    def __init__(self, unit_of_work_factory: LedgerUnitOfWorkFactory):
        if unit_of_work_factory is None:
            raise ValueError("unit_of_work_factory must not be None")
        self._unit_of_work_factory = unit_of_work_factory

    def ledger_commodity_create(self, request: CommodityCreateRequest) -> CommodityRecord:
        """Create one commodity with a unique name.

        Raises:
            LedgerValidationError: Raised when the input is invalid.
            DuplicateReferenceDataError: Raised when the name already exists.
        """

        with ledger_log_rejections(logger, "commodity_create"):
            name = domain_require_text(request.name, "name")
            category = domain_require_text(request.category, "category")
            unit = domain_require_text(request.unit, "unit")
            current_price = domain_require_positive_price(request.current_price, "current_price")

            with self._unit_of_work_factory() as unit_of_work:
                if unit_of_work.commodities.db_commodity_get_by_name(name) is not None:
                    raise DuplicateReferenceDataError(f"commodity name already exists: {name}")
                commodity = unit_of_work.commodities.db_commodity_insert(
                    CommodityInsertRequest(name=name, category=category, unit=unit, current_price=current_price)
                )

        logger.info("commodity created", extra={"commodity_id": commodity.commodity_id, "commodity_name": name})
        return commodity

    def ledger_commodity_update_price(self, commodity_id: UUID, new_price: Decimal) -> CommodityPriceUpdateResult:
        """Set a new commodity price and cascade it to the market value of every lot.

        The absolute change is `new - old`; the percentage change is relative
        to the old price, or 0 when the old price is 0.

        Args:
            commodity_id: Commodity identifier.
            new_price: New unit price.

        Returns:
            CommodityPriceUpdateResult: Repriced commodity and revalued lot count.

        Raises:
            CommodityNotFoundError: Raised when the commodity does not exist.
            LedgerValidationError: Raised when the price is not positive.
        """

        with ledger_log_rejections(logger, "commodity_update_price", commodity_id=commodity_id):
            current_price = domain_require_positive_price(new_price, "current_price")

            with self._unit_of_work_factory() as unit_of_work:
                commodity = unit_of_work.commodities.db_commodity_get(commodity_id, for_update=True)
                if commodity is None:
                    raise CommodityNotFoundError(f"commodity not found: {commodity_id}")

                price_change = domain_quantize_price(current_price - commodity.current_price, "price_change")
                price_change_percent = _ZERO
                if commodity.current_price > _ZERO:
                    price_change_percent = price_change / commodity.current_price * _HUNDRED
                updated_commodity = unit_of_work.commodities.db_commodity_update_price(
                    commodity_id,
                    current_price=current_price,
                    price_change=price_change,
                    price_change_percent=domain_quantize_percent(price_change_percent, "price_change_percent"),
                )
                lots_revalued = unit_of_work.inventory_lots.db_inventory_lot_update_market_value_for_commodity(
                    commodity_id,
                    current_price,
                )

        logger.info(
            "commodity price updated",
            extra={"commodity_id": commodity_id, "current_price": current_price, "lots_revalued": lots_revalued},
        )
        return CommodityPriceUpdateResult(commodity=updated_commodity, lots_revalued=lots_revalued)

    def ledger_counterparty_create(self, request: CounterpartyCreateRequest) -> CounterpartyRecord:
        """Create one counterparty with zero exposure.

        Raises:
            LedgerValidationError: Raised when the input is invalid.
            DuplicateReferenceDataError: Raised when the name already exists.
        """

        with ledger_log_rejections(logger, "counterparty_create"):
            name = domain_require_text(request.name, "name")
            country = domain_require_text(request.country, "country")
            rating = domain_require_text(request.rating, "rating")
            credit_limit = _reference_require_credit_limit(request.credit_limit)

            with self._unit_of_work_factory() as unit_of_work:
                if unit_of_work.counterparties.db_counterparty_get_by_name(name) is not None:
                    raise DuplicateReferenceDataError(f"counterparty name already exists: {name}")
                counterparty = unit_of_work.counterparties.db_counterparty_insert(
                    CounterpartyInsertRequest(name=name, country=country, rating=rating, credit_limit=credit_limit)
                )

        logger.info("counterparty created", extra={"counterparty_id": counterparty.counterparty_id})
        return counterparty

    def ledger_counterparty_assess_credit(
        self,
        counterparty_id: UUID,
        request: CounterpartyCreditAssessmentRequest,
    ) -> CounterpartyCreditAssessmentResult:
        """Change a counterparty's rating and credit limit.

        Raises:
            CounterpartyNotFoundError: Raised when the counterparty does not exist.
            LedgerValidationError: Raised when the new limit is below the credit already used.
        """

        with ledger_log_rejections(logger, "counterparty_assess_credit", counterparty_id=counterparty_id):
            rating = domain_require_text(request.rating, "rating")
            credit_limit = _reference_require_credit_limit(request.credit_limit)

            with self._unit_of_work_factory() as unit_of_work:
                counterparty = unit_of_work.counterparties.db_counterparty_get(counterparty_id, for_update=True)
                if counterparty is None:
                    raise CounterpartyNotFoundError(f"counterparty not found: {counterparty_id}")
                if credit_limit < counterparty.credit_used:
                    raise LedgerValidationError(
                        f"credit_limit {credit_limit} is below credit already used {counterparty.credit_used}"
                    )
                updated_counterparty = unit_of_work.counterparties.db_counterparty_update_credit_terms(
                    counterparty_id,
                    credit_limit=credit_limit,
                    rating=rating,
                )

        logger.info(
            "counterparty credit assessed",
            extra={"counterparty_id": counterparty_id, "rating": rating, "credit_limit": credit_limit},
        )
        return CounterpartyCreditAssessmentResult(
            counterparty=updated_counterparty,
            available_credit=credit_available(updated_counterparty),
        )
