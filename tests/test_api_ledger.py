"""End-to-end tests for the ledger command API over the in-memory store."""

from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from commodity_ledger.api import create_api_application
from commodity_ledger.config import AppSettings
from commodity_ledger.domain import HealthStatus
from commodity_ledger.domain.errors import LedgerConcurrencyConflictError
from commodity_ledger.ledger import (
    ContractExecutionService,
    InventoryLedgerService,
    ReferenceDataService,
    ShipmentDeliveryService,
    TradeExecutionService,
)


class _HealthyDatabaseService:
    def db_connection_label(self) -> str:
        return "postgresql://test"

    def db_check_health(self) -> HealthStatus:
        return HealthStatus(status="ok", detail="ready")


class _ConflictingTradeService:
    """Trade service double whose reads always lose a serialization race."""

    def ledger_trade_get(self, trade_id):
        raise LedgerConcurrencyConflictError(f"concurrent update on trade {trade_id}")


def _build_application(unit_of_work_factory, trade_service=None):
    return create_api_application(
        AppSettings(environment_name="test", api_default_limit=2, api_max_limit=3),
        _HealthyDatabaseService(),
        trade_service or TradeExecutionService(unit_of_work_factory=unit_of_work_factory),
        ContractExecutionService(unit_of_work_factory=unit_of_work_factory),
        InventoryLedgerService(unit_of_work_factory=unit_of_work_factory),
        ReferenceDataService(unit_of_work_factory=unit_of_work_factory),
        ShipmentDeliveryService(unit_of_work_factory=unit_of_work_factory),
    )


@pytest.fixture()
def client(unit_of_work_factory) -> TestClient:
    return TestClient(_build_application(unit_of_work_factory))


def _create_reference_data(client: TestClient, credit_limit: str = "1000000") -> tuple[str, str]:
    commodity_response = client.post(
        "/commodities",
        json={"name": "Wheat", "category": "AGRICULTURAL", "unit": "MT", "current_price": "250"},
    )
    counterparty_response = client.post(
        "/counterparties",
        json={"name": "Atlas Grain", "country": "NL", "rating": "A", "credit_limit": credit_limit},
    )
    assert commodity_response.status_code == 201
    assert counterparty_response.status_code == 201
    return (
        commodity_response.json()["commodity"]["commodity_id"],
        counterparty_response.json()["counterparty"]["counterparty_id"],
    )


def _trade_body(commodity_id: str, counterparty_id: str, direction: str = "BUY", quantity: int = 100) -> dict:
    return {
        "commodity_id": commodity_id,
        "counterparty_id": counterparty_id,
        "direction": direction,
        "quantity": quantity,
        "price": "200",
        "settlement_date": "2026-11-30",
        "location": "Bay 1",
    }


def test_api_trade_lifecycle_posts_inventory_movement(client: TestClient) -> None:
    """Create and execute a BUY trade and observe the received lot.

    Returns:
        None: Assertions validate created trade, executed movement and lot state.

    Raises:
        AssertionError: Raised when the lifecycle does not post inventory.
    """

    commodity_id, counterparty_id = _create_reference_data(client)

    create_response = client.post("/trades", json=_trade_body(commodity_id, counterparty_id))
    assert create_response.status_code == 201
    trade = create_response.json()["trade"]
    assert trade["status"] == "OPEN"
    assert Decimal(trade["total_value"]) == Decimal("20000")

    execute_response = client.post(f"/trades/{trade['trade_id']}/execute")
    assert execute_response.status_code == 200
    payload = execute_response.json()
    assert payload["trade"]["status"] == "EXECUTED"
    assert len(payload["movements"]) == 1
    movement = payload["movements"][0]
    assert movement["movement_kind"] == "IN"
    assert movement["quantity_delta"] == 100
    assert movement["reference_kind"] == "TRADE"
    assert movement["reference_id"] == trade["trade_id"]

    lot_response = client.get(f"/inventory/lots/{movement['lot_id']}")
    assert lot_response.status_code == 200
    assert lot_response.json()["lot"]["quantity"] == 100

    settle_response = client.post(f"/trades/{trade['trade_id']}/settle")
    assert settle_response.status_code == 200
    assert settle_response.json()["trade"]["status"] == "SETTLED"


def test_api_error_envelope_for_unknown_trade(client: TestClient) -> None:
    """Render a missing trade as HTTP 404 with the error envelope.

    Returns:
        None: Assertions validate the envelope.

    Raises:
        AssertionError: Raised when status or code differ.
    """

    response = client.get(f"/trades/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["status"] == "error"
    assert response.json()["code"] == "TRADE_NOT_FOUND"


def test_api_error_envelope_for_invalid_state_transition(client: TestClient) -> None:
    """Reject settling an OPEN trade with HTTP 409.

    Returns:
        None: Assertions validate the conflict response.

    Raises:
        AssertionError: Raised when the transition is accepted.
    """

    commodity_id, counterparty_id = _create_reference_data(client)
    trade_id = client.post("/trades", json=_trade_body(commodity_id, counterparty_id)).json()["trade"]["trade_id"]

    response = client.post(f"/trades/{trade_id}/settle")

    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRADE_STATE"


def test_api_error_envelope_for_credit_limit_breach(client: TestClient) -> None:
    """Reject a trade beyond available credit with HTTP 422.

    Returns:
        None: Assertions validate the capacity response.

    Raises:
        AssertionError: Raised when the trade is accepted.
    """

    commodity_id, counterparty_id = _create_reference_data(client, credit_limit="1000")

    response = client.post("/trades", json=_trade_body(commodity_id, counterparty_id))

    assert response.status_code == 422
    assert response.json()["code"] == "CREDIT_LIMIT_EXCEEDED"


def test_api_error_envelope_for_uncovered_sell(client: TestClient) -> None:
    """Reject executing a SELL with no inventory and leave the trade OPEN.

    Returns:
        None: Assertions validate the capacity response and unchanged trade.

    Raises:
        AssertionError: Raised when the execution is partially applied.
    """

    commodity_id, counterparty_id = _create_reference_data(client)
    trade_id = client.post(
        "/trades", json=_trade_body(commodity_id, counterparty_id, direction="SELL")
    ).json()["trade"]["trade_id"]

    response = client.post(f"/trades/{trade_id}/execute")

    assert response.status_code == 422
    assert response.json()["code"] == "INSUFFICIENT_INVENTORY"
    assert client.get(f"/trades/{trade_id}").json()["trade"]["status"] == "OPEN"


@pytest.mark.parametrize(
    "override",
    [{"quantity": "100"}, {"quantity": 100.5}, {"unexpected": "field"}],
)
def test_api_rejects_malformed_request_body(client: TestClient, override: dict) -> None:
    """Render malformed bodies as HTTP 400 with the validation code.

    Returns:
        None: Assertions validate the validation envelope.

    Raises:
        AssertionError: Raised when the malformed body is accepted.
    """

    body = _trade_body(str(uuid4()), str(uuid4()))
    body.update(override)

    response = client.post("/trades", json=body)

    assert response.status_code == 400
    assert response.json()["status"] == "error"
    assert response.json()["code"] == "VALIDATION_FAILED"
    assert response.json()["details"]


def test_api_concurrency_conflict_is_retryable(unit_of_work_factory) -> None:
    """Mark concurrency conflicts as retryable HTTP 409 responses.

    Returns:
        None: Assertions validate the retryable flag.

    Raises:
        AssertionError: Raised when the flag is missing.
    """

    client = TestClient(_build_application(unit_of_work_factory, trade_service=_ConflictingTradeService()))

    response = client.get(f"/trades/{uuid4()}")

    assert response.status_code == 409
    assert response.json()["code"] == "CONCURRENCY_CONFLICT"
    assert response.json()["retryable"] is True


def test_api_movement_history_caps_requested_limit(client: TestClient, ledger_store) -> None:
    """Cap the movement page size at the configured maximum.

    Returns:
        None: Assertions validate page metadata and ordering.

    Raises:
        AssertionError: Raised when the cap is not applied.
    """

    commodity = ledger_store.seed_commodity()
    lot = ledger_store.seed_lot(commodity.commodity_id, quantity=0)
    for quantity in (10, 20, 30, 40):
        response = client.post(
            f"/inventory/lots/{lot.lot_id}/movements",
            json={"movement_kind": "IN", "quantity": quantity, "reason": "receipt"},
        )
        assert response.status_code == 201

    response = client.get(f"/inventory/lots/{lot.lot_id}/movements", params={"limit": 10})

    assert response.status_code == 200
    payload = response.json()
    assert payload["page"] == {"limit": 10, "applied_limit": 3, "offset": 0, "returned": 3}
    assert [item["quantity_delta"] for item in payload["items"]] == [40, 30, 20]
    assert payload["items"][0]["resulting_quantity"] == 100


def test_api_rejects_out_movement_beyond_lot_quantity(client: TestClient, ledger_store) -> None:
    """Reject an OUT movement that would drive the lot negative.

    Returns:
        None: Assertions validate the rejection and untouched lot.

    Raises:
        AssertionError: Raised when the lot goes negative.
    """

    commodity = ledger_store.seed_commodity()
    lot = ledger_store.seed_lot(commodity.commodity_id, quantity=5)

    response = client.post(
        f"/inventory/lots/{lot.lot_id}/movements",
        json={"movement_kind": "OUT", "quantity": 6, "reason": "dispatch"},
    )

    assert response.status_code == 422
    assert ledger_store.lots[lot.lot_id].quantity == 5
    assert ledger_store.movements_for_lot(lot.lot_id) == []


def test_api_valuation_reports_unrealized_pnl(client: TestClient, ledger_store) -> None:
    """Aggregate lot valuation with commodity and warehouse filters echoed.

    Returns:
        None: Assertions validate totals and filters.

    Raises:
        AssertionError: Raised when totals are wrong.
    """

    commodity = ledger_store.seed_commodity()
    ledger_store.seed_lot(commodity.commodity_id, quantity=100)
    ledger_store.seed_lot(commodity.commodity_id, quantity=50, warehouse="Antwerp")

    response = client.get(
        "/inventory/valuation",
        params={"commodity_id": str(commodity.commodity_id), "warehouse": "Rotterdam"},
    )

    assert response.status_code == 200
    valuation = response.json()["valuation"]
    assert valuation["lot_count"] == 1
    assert valuation["total_quantity"] == 100
    assert Decimal(valuation["total_cost_value"]) == Decimal("20000")
    assert Decimal(valuation["total_market_value"]) == Decimal("25000")
    assert Decimal(valuation["unrealized_pnl"]) == Decimal("5000")
    assert response.json()["filters"]["warehouse"] == "Rotterdam"
    assert response.json()["filters"]["location"] is None


def test_api_rejects_price_beyond_column_range(client: TestClient) -> None:
    """Render an unstorable price as HTTP 400 instead of a server error.

    Returns:
        None: Assertions validate the validation envelope.

    Raises:
        AssertionError: Raised when the oversized price escapes as HTTP 500.
    """

    commodity_id, counterparty_id = _create_reference_data(client)
    body = _trade_body(commodity_id, counterparty_id, quantity=1)
    body["price"] = "1e30"

    response = client.post("/trades", json=body)

    assert response.status_code == 400
    assert response.json()["status"] == "error"
    assert response.json()["code"] == "VALIDATION_FAILED"
    assert "price" in response.json()["message"]


def test_api_trade_update_terms_amends_open_trade(client: TestClient) -> None:
    """Amend an OPEN trade over PATCH and reject amending it once executed.

    Returns:
        None: Assertions validate the amended trade and the state guard.

    Raises:
        AssertionError: Raised when the amendment is not applied or guarded.
    """

    commodity_id, counterparty_id = _create_reference_data(client)
    trade_id = client.post("/trades", json=_trade_body(commodity_id, counterparty_id)).json()["trade"]["trade_id"]

    update_response = client.patch(f"/trades/{trade_id}", json={"quantity": 150, "location": "Bay 2"})

    assert update_response.status_code == 200
    trade = update_response.json()["trade"]
    assert trade["quantity"] == 150
    assert trade["location"] == "Bay 2"
    assert Decimal(trade["total_value"]) == Decimal("30000")

    client.post(f"/trades/{trade_id}/execute")
    rejected_response = client.patch(f"/trades/{trade_id}", json={"price": "210"})

    assert rejected_response.status_code == 409
    assert rejected_response.json()["code"] == "INVALID_TRADE_STATE"


def test_api_shipment_tracking_events(client: TestClient) -> None:
    """Record tracking events over the API and read the trail back in order.

    Returns:
        None: Assertions validate event payloads and ordering.

    Raises:
        AssertionError: Raised when the trail is incomplete.
    """

    commodity_id, _ = _create_reference_data(client)
    shipment_id = client.post(
        "/shipments",
        json={
            "commodity_id": commodity_id,
            "quantity": 10,
            "origin": "Rotterdam",
            "destination": "Hamburg",
            "carrier": "Rhine Barge Co",
            "tracking_number": "TRK-API",
            "expected_arrival": "2026-10-24",
        },
    ).json()["shipment"]["shipment_id"]

    status_response = client.post(
        f"/shipments/{shipment_id}/status",
        json={"status": "IN_TRANSIT", "location": "North Sea"},
    )
    event_response = client.post(f"/shipments/{shipment_id}/events", json={"notes": "Customs cleared"})

    assert status_response.status_code == 200
    assert status_response.json()["event"]["location"] == "North Sea"
    assert event_response.status_code == 201
    assert event_response.json()["event"]["status"] == "IN_TRANSIT"
    assert event_response.json()["movement"] is None
    assert client.get(f"/shipments/{shipment_id}").json()["shipment"]["status"] == "IN_TRANSIT"

    events = client.get(f"/shipments/{shipment_id}/events").json()["events"]
    assert [event["status"] for event in events] == ["PREPARING", "IN_TRANSIT", "IN_TRANSIT"]
    assert events[-1]["notes"] == "Customs cleared"
    assert client.get(f"/shipments/{uuid4()}/events").status_code == 404
