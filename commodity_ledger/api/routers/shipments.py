"""Shipment registration and status router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from commodity_ledger.domain.errors import LedgerError
from commodity_ledger.ledger import ShipmentDeliveryService
from commodity_ledger.ledger.interfaces import ShipmentEventRequest, ShipmentRegisterRequest, ShipmentStatusUpdateResult

from ..errors import api_build_error_response
from ..schemas import ShipmentEventBody, ShipmentRegisterBody, ShipmentStatusBody
from ..serializers import api_serialize_movement, api_serialize_shipment, api_serialize_shipment_event


def api_create_shipments_router(shipment_service: ShipmentDeliveryService) -> APIRouter:
    """Create router exposing shipment commands.

    Args:
        shipment_service: Shipment command service.

    Returns:
        APIRouter: Router exposing `/shipments` endpoints.

    Raises:
        ValueError: Raised when shipment_service is None.
    """

    if shipment_service is None:
        raise ValueError("shipment_service must not be None")

    router = APIRouter(prefix="/shipments", tags=["shipments"])

    @router.post("")
    def api_shipment_register(body: ShipmentRegisterBody) -> JSONResponse:
        try:
            shipment = shipment_service.ledger_shipment_register(
                ShipmentRegisterRequest(
                    commodity_id=body.commodity_id,
                    quantity=body.quantity,
                    origin=body.origin,
                    destination=body.destination,
                    carrier=body.carrier,
                    tracking_number=body.tracking_number,
                    expected_arrival=body.expected_arrival,
                    trade_id=body.trade_id,
                    departure_date=body.departure_date,
                )
            )
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"shipment": api_serialize_shipment(shipment)}, status_code=status.HTTP_201_CREATED)

    @router.get("/{shipment_id}")
    def api_shipment_detail(shipment_id: UUID) -> JSONResponse:
        try:
            shipment = shipment_service.ledger_shipment_get(shipment_id)
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"shipment": api_serialize_shipment(shipment)}, status_code=status.HTTP_200_OK)

    @router.post("/{shipment_id}/status")
    def api_shipment_update_status(shipment_id: UUID, body: ShipmentStatusBody) -> JSONResponse:
        try:
            result = shipment_service.ledger_shipment_update_status(
                shipment_id,
                body.status,
                location=body.location,
                notes=body.notes,
            )
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content=_api_serialize_event_result(result), status_code=status.HTTP_200_OK)

    @router.get("/{shipment_id}/events")
    def api_shipment_list_events(shipment_id: UUID) -> JSONResponse:
        try:
            events = shipment_service.ledger_shipment_list_events(shipment_id)
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(
            content={"events": [api_serialize_shipment_event(event) for event in events]},
            status_code=status.HTTP_200_OK,
        )

    @router.post("/{shipment_id}/events")
    def api_shipment_add_event(shipment_id: UUID, body: ShipmentEventBody) -> JSONResponse:
        """Record one tracking event, changing the status when the body carries one.

        Args:
            shipment_id: Shipment identifier.
            body: Optional status plus position and notes.

        Returns:
            JSONResponse: Shipment, event and delivery movement payloads.
        """

        try:
            result = shipment_service.ledger_shipment_add_event(
                shipment_id,
                ShipmentEventRequest(status=body.status, location=body.location, notes=body.notes),
            )
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content=_api_serialize_event_result(result), status_code=status.HTTP_201_CREATED)

    return router


def _api_serialize_event_result(result: ShipmentStatusUpdateResult) -> dict[str, object]:
    return {
        "shipment": api_serialize_shipment(result.shipment),
        "previous_status": result.previous_status.value,
        "event": api_serialize_shipment_event(result.event),
        "movement": None if result.movement is None else api_serialize_movement(result.movement),
    }


__all__ = ["api_create_shipments_router"]
