"""Regression tests for contract lifecycle and tranche execution."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from commodity_ledger.db.interfaces import TradeInsertRequest
from commodity_ledger.domain import ContractStatus, InventoryMovementKind, MovementReferenceKind, TradeDirection, TradeStatus
from commodity_ledger.domain.errors import (
    ContractNotFoundError,
    ExceedsRemainingBalanceError,
    InsufficientInventoryError,
    InvalidContractStateError,
    InvalidDateRangeError,
    InvalidTradeStateError,
    LedgerValidationError,
)
from commodity_ledger.ledger import ContractExecutionService
from commodity_ledger.ledger.interfaces import (
    ContractCreateRequest,
    ContractTermsUpdateRequest,
    ContractTrancheRequest,
    InventoryRouting,
)

_TODAY = date(2026, 10, 17)


def _build_service(unit_of_work_factory) -> ContractExecutionService:
    return ContractExecutionService(unit_of_work_factory=unit_of_work_factory, today=lambda: _TODAY)


def _create_contract(service, commodity_id, counterparty_id, direction: str = "PURCHASE", quantity: int = 1000):
    return service.ledger_contract_create(
        ContractCreateRequest(
            commodity_id=commodity_id,
            counterparty_id=counterparty_id,
            direction=direction,
            quantity=quantity,
            price=Decimal("245.50"),
            start_date=date(2026, 10, 1),
            end_date=date(2027, 3, 31),
            delivery_terms="FOB Rotterdam",
            payment_terms="Net 30",
        )
    )


def _seed_trade(ledger_store, unit_of_work_factory, commodity_id, counterparty_id):
    with unit_of_work_factory() as unit_of_work:
        return unit_of_work.trades.db_trade_insert(
            TradeInsertRequest(
                commodity_id=commodity_id,
                counterparty_id=counterparty_id,
                direction=TradeDirection.BUY,
                quantity=100,
                price=Decimal("245.50"),
                total_value=Decimal("24550.00"),
                traded_at_utc=datetime(2026, 10, 16, tzinfo=timezone.utc),
                settlement_date=date(2026, 11, 1),
                location="Rotterdam",
            )
        )


def test_contract_create_starts_active_with_full_remaining(ledger_store, unit_of_work_factory) -> None:
    """Create an ACTIVE contract with nothing executed.

    Returns:
        None: Assertions validate initial contract balances.

    Raises:
        AssertionError: Raised when initial balances are wrong.
    """

    commodity = ledger_store.seed_commodity()
    counterparty = ledger_store.seed_counterparty()

    contract = _create_contract(_build_service(unit_of_work_factory), commodity.commodity_id, counterparty.counterparty_id)

    assert contract.status is ContractStatus.ACTIVE
    assert contract.executed == 0
    assert contract.remaining == 1000
    assert contract.total_value == Decimal("245500.00")


def test_contract_create_rejects_inverted_date_range(ledger_store, unit_of_work_factory) -> None:
    """Reject an end date on or before the start date.

    Returns:
        None: Assertions validate the typed failure.

    Raises:
        AssertionError: Raised when an inverted range is accepted.
    """

    commodity = ledger_store.seed_commodity()
    counterparty = ledger_store.seed_counterparty()

    with pytest.raises(InvalidDateRangeError):
        _build_service(unit_of_work_factory).ledger_contract_create(
            ContractCreateRequest(
                commodity_id=commodity.commodity_id,
                counterparty_id=counterparty.counterparty_id,
                direction="SALE",
                quantity=10,
                price=Decimal("1"),
                start_date=date(2026, 10, 1),
                end_date=date(2026, 10, 1),
                delivery_terms="CIF",
                payment_terms="Net 60",
            )
        )

    assert ledger_store.contracts == {}


def test_contract_purchase_tranches_complete_the_contract(ledger_store, unit_of_work_factory) -> None:
    """Receive PURCHASE tranches into the contract lot until the contract completes.

    Returns:
        None: Assertions validate balances, lot effects and tranche history.

    Raises:
        AssertionError: Raised when tranche execution is inconsistent.
    """

    commodity = ledger_store.seed_commodity(current_price=Decimal("250"))
    counterparty = ledger_store.seed_counterparty()
    service = _build_service(unit_of_work_factory)
    contract = _create_contract(service, commodity.commodity_id, counterparty.counterparty_id)

    first = service.ledger_contract_execute_tranche(contract.contract_id, ContractTrancheRequest(quantity=400))
    second = service.ledger_contract_execute_tranche(
        contract.contract_id,
        ContractTrancheRequest(quantity=600, execution_date=date(2026, 12, 1), notes="  final lift "),
    )

    assert first.contract.executed == 400
    assert first.contract.remaining == 600
    assert first.contract.status is ContractStatus.ACTIVE
    assert first.tranche.execution_date == _TODAY
    assert second.contract.executed == 1000
    assert second.contract.remaining == 0
    assert second.contract.status is ContractStatus.COMPLETED
    assert second.tranche.notes == "final lift"

    movement = first.movements[0]
    lot = ledger_store.lots[movement.lot_id]
    assert (lot.warehouse, lot.location, lot.quality) == ("Contract Delivery", "Main Location", "Contract Grade")
    assert lot.quantity == 1000
    assert lot.cost_basis == Decimal("245.5")
    assert movement.movement_kind is InventoryMovementKind.IN
    assert movement.reference_kind is MovementReferenceKind.CONTRACT
    assert movement.reference_id == str(contract.contract_id)

    tranches = service.ledger_contract_list_tranches(contract.contract_id)
    assert [tranche.quantity for tranche in tranches] == [400, 600]


def test_contract_tranche_rejects_quantity_above_remaining(ledger_store, unit_of_work_factory) -> None:
    """Reject a tranche larger than the remaining quantity and leave balances unchanged.

    Returns:
        None: Assertions validate the typed failure and unchanged state.

    Raises:
        AssertionError: Raised when the contract is overdrawn.
    """

    commodity = ledger_store.seed_commodity()
    counterparty = ledger_store.seed_counterparty()
    service = _build_service(unit_of_work_factory)
    contract = _create_contract(service, commodity.commodity_id, counterparty.counterparty_id, quantity=100)
    service.ledger_contract_execute_tranche(contract.contract_id, ContractTrancheRequest(quantity=60))

    with pytest.raises(ExceedsRemainingBalanceError):
        service.ledger_contract_execute_tranche(contract.contract_id, ContractTrancheRequest(quantity=41))

    stored_contract = ledger_store.contracts[contract.contract_id]
    assert (stored_contract.executed, stored_contract.remaining) == (60, 40)
    assert len(ledger_store.tranches) == 1


def test_contract_sale_tranche_allocates_across_lots(ledger_store, unit_of_work_factory) -> None:
    """Draw a SALE tranche from lots oldest first.

    Returns:
        None: Assertions validate multi-lot sale allocation.

    Raises:
        AssertionError: Raised when SALE allocation is wrong.
    """

    commodity = ledger_store.seed_commodity()
    counterparty = ledger_store.seed_counterparty()
    older_lot = ledger_store.seed_lot(commodity.commodity_id, quantity=30, warehouse="A")
    newer_lot = ledger_store.seed_lot(commodity.commodity_id, quantity=50, warehouse="B")
    service = _build_service(unit_of_work_factory)
    contract = _create_contract(service, commodity.commodity_id, counterparty.counterparty_id, direction="SALE", quantity=100)

    result = service.ledger_contract_execute_tranche(contract.contract_id, ContractTrancheRequest(quantity=45))

    assert [movement.quantity_delta for movement in result.movements] == [-30, -15]
    assert ledger_store.lots[older_lot.lot_id].quantity == 0
    assert ledger_store.lots[newer_lot.lot_id].quantity == 35
    assert result.contract.remaining == 55


def test_contract_sale_tranche_shortfall_rolls_back(ledger_store, unit_of_work_factory) -> None:
    """Leave contract balances and lots untouched when a SALE tranche cannot be covered.

    Returns:
        None: Assertions validate rollback.

    Raises:
        AssertionError: Raised when a partial tranche is persisted.
    """

    commodity = ledger_store.seed_commodity()
    counterparty = ledger_store.seed_counterparty()
    lot = ledger_store.seed_lot(commodity.commodity_id, quantity=10)
    service = _build_service(unit_of_work_factory)
    contract = _create_contract(service, commodity.commodity_id, counterparty.counterparty_id, direction="SALE", quantity=100)

    with pytest.raises(InsufficientInventoryError):
        service.ledger_contract_execute_tranche(
            contract.contract_id,
            ContractTrancheRequest(quantity=20, routing=InventoryRouting(warehouse="Rotterdam")),
        )

    assert ledger_store.lots[lot.lot_id].quantity == 10
    assert ledger_store.contracts[contract.contract_id].executed == 0
    assert ledger_store.tranches == []


def test_contract_tranche_links_open_trade(ledger_store, unit_of_work_factory) -> None:
    """Mark a linked OPEN trade EXECUTED and reject a linked CANCELLED trade.

    Returns:
        None: Assertions validate linked trade handling.

    Raises:
        AssertionError: Raised when linked trade rules are violated.
    """

    commodity = ledger_store.seed_commodity()
    counterparty = ledger_store.seed_counterparty()
    service = _build_service(unit_of_work_factory)
    contract = _create_contract(service, commodity.commodity_id, counterparty.counterparty_id)
    open_trade = _seed_trade(ledger_store, unit_of_work_factory, commodity.commodity_id, counterparty.counterparty_id)
    cancelled_trade = _seed_trade(ledger_store, unit_of_work_factory, commodity.commodity_id, counterparty.counterparty_id)
    with unit_of_work_factory() as unit_of_work:
        unit_of_work.trades.db_trade_update_status(cancelled_trade.trade_id, TradeStatus.CANCELLED)

    result = service.ledger_contract_execute_tranche(
        contract.contract_id,
        ContractTrancheRequest(quantity=100, trade_id=open_trade.trade_id),
    )

    assert result.tranche.trade_id == open_trade.trade_id
    assert ledger_store.trades[open_trade.trade_id].status is TradeStatus.EXECUTED
    with pytest.raises(InvalidTradeStateError):
        service.ledger_contract_execute_tranche(
            contract.contract_id,
            ContractTrancheRequest(quantity=100, trade_id=cancelled_trade.trade_id),
        )
    assert ledger_store.contracts[contract.contract_id].executed == 100


def test_contract_update_terms_shifts_remaining(ledger_store, unit_of_work_factory) -> None:
    """Move `remaining` by the quantity delta and complete when it reaches zero.

    Returns:
        None: Assertions validate recomputed balances.

    Raises:
        AssertionError: Raised when the balance invariant breaks.
    """

    commodity = ledger_store.seed_commodity()
    counterparty = ledger_store.seed_counterparty()
    service = _build_service(unit_of_work_factory)
    contract = _create_contract(service, commodity.commodity_id, counterparty.counterparty_id, quantity=100)
    service.ledger_contract_execute_tranche(contract.contract_id, ContractTrancheRequest(quantity=40))

    grown = service.ledger_contract_update_terms(
        contract.contract_id,
        ContractTermsUpdateRequest(quantity=150, payment_terms="Net 45"),
    )
    assert (grown.quantity, grown.executed, grown.remaining) == (150, 40, 110)
    assert grown.total_value == Decimal("36825.00")
    assert grown.payment_terms == "Net 45"

    with pytest.raises(LedgerValidationError):
        service.ledger_contract_update_terms(contract.contract_id, ContractTermsUpdateRequest(quantity=39))

    completed = service.ledger_contract_update_terms(contract.contract_id, ContractTermsUpdateRequest(quantity=40))
    assert completed.remaining == 0
    assert completed.status is ContractStatus.COMPLETED


def test_contract_cancel_blocks_further_tranches(ledger_store, unit_of_work_factory) -> None:
    """Reject tranches and a second cancellation after cancellation.

    Returns:
        None: Assertions validate terminal state guard.

    Raises:
        AssertionError: Raised when a cancelled contract keeps executing.
    """

    commodity = ledger_store.seed_commodity()
    counterparty = ledger_store.seed_counterparty()
    service = _build_service(unit_of_work_factory)
    contract = _create_contract(service, commodity.commodity_id, counterparty.counterparty_id)

    cancelled = service.ledger_contract_cancel(contract.contract_id, reason="Force majeure")

    assert cancelled.status is ContractStatus.CANCELLED
    assert cancelled.cancellation_reason == "Force majeure"
    with pytest.raises(InvalidContractStateError):
        service.ledger_contract_execute_tranche(contract.contract_id, ContractTrancheRequest(quantity=1))
    with pytest.raises(InvalidContractStateError):
        service.ledger_contract_cancel(contract.contract_id)


def test_contract_cancel_rejects_completed_contract(ledger_store, unit_of_work_factory) -> None:
    """Reject cancelling a contract whose full quantity has been executed.

    Returns:
        None: Assertions validate the terminal state guard.

    Raises:
        AssertionError: Raised when a completed contract is cancelled.
    """

    commodity = ledger_store.seed_commodity()
    counterparty = ledger_store.seed_counterparty()
    service = _build_service(unit_of_work_factory)
    contract = _create_contract(service, commodity.commodity_id, counterparty.counterparty_id, quantity=50)
    completed = service.ledger_contract_execute_tranche(contract.contract_id, ContractTrancheRequest(quantity=50)).contract
    assert completed.status is ContractStatus.COMPLETED

    with pytest.raises(InvalidContractStateError):
        service.ledger_contract_cancel(contract.contract_id, reason="Late cancellation")

    stored_contract = ledger_store.contracts[contract.contract_id]
    assert stored_contract.status is ContractStatus.COMPLETED
    assert stored_contract.cancellation_reason is None


def test_contract_get_raises_for_unknown_contract(unit_of_work_factory) -> None:
    """Raise a typed not-found failure for unknown contracts.

    Returns:
        None: Assertions validate the typed failure.

    Raises:
        AssertionError: Raised when a missing contract is returned.
    """

    service = _build_service(unit_of_work_factory)

    with pytest.raises(ContractNotFoundError):
        service.ledger_contract_get(uuid4())
    with pytest.raises(ContractNotFoundError):
        service.ledger_contract_list_tranches(uuid4())
