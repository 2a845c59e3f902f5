"""Inventory command and read router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from commodity_ledger.config import AppSettings
from commodity_ledger.domain.errors import LedgerError
from commodity_ledger.ledger import InventoryLedgerService
from commodity_ledger.ledger.interfaces import InventoryReceiptRequest, InventoryValuationFilter

from ..errors import api_build_error_response
from ..schemas import InventoryMovementBody, InventoryReceiptBody
from ..serializers import api_serialize_lot, api_serialize_movement, api_serialize_valuation


def api_create_inventory_router(settings: AppSettings, inventory_service: InventoryLedgerService) -> APIRouter:
    """Create router exposing inventory movements, receipts, history and valuation.

    Args:
        settings: Runtime settings used for pagination defaults.
        inventory_service: Inventory command service.

    Returns:
        APIRouter: Router exposing `/inventory` endpoints.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if inventory_service is None:
        raise ValueError("inventory_service must not be None")

    router = APIRouter(prefix="/inventory", tags=["inventory"])

    @router.post("/lots/{lot_id}/movements")
    def api_inventory_post_movement(lot_id: UUID, body: InventoryMovementBody) -> JSONResponse:
        try:
            result = inventory_service.ledger_inventory_post_movement(
                lot_id=lot_id,
                movement_kind=body.movement_kind,
                quantity=body.quantity,
                reason=body.reason,
                reference_kind=body.reference_kind,
                reference_id=body.reference_id,
                unit_cost=body.unit_cost,
                unit_market_value=body.unit_market_value,
            )
        except LedgerError as error:
            return api_build_error_response(error)
        payload = {"lot": api_serialize_lot(result.lot), "movement": api_serialize_movement(result.movement)}
        return JSONResponse(content=payload, status_code=status.HTTP_201_CREATED)

    @router.post("/receipts")
    def api_inventory_receive(body: InventoryReceiptBody) -> JSONResponse:
        try:
            result = inventory_service.ledger_inventory_receive(
                InventoryReceiptRequest(
                    commodity_id=body.commodity_id,
                    quantity=body.quantity,
                    warehouse=body.warehouse,
                    location=body.location,
                    quality=body.quality,
                    unit_cost=body.unit_cost,
                    unit=body.unit,
                    unit_market_value=body.unit_market_value,
                    reason=body.reason,
                )
            )
        except LedgerError as error:
            return api_build_error_response(error)
        payload = {
            "lot": api_serialize_lot(result.lot),
            "movement": api_serialize_movement(result.movement),
            "lot_created": result.lot_created,
        }
        return JSONResponse(content=payload, status_code=status.HTTP_201_CREATED)

    @router.get("/lots/{lot_id}")
    def api_inventory_lot_detail(lot_id: UUID) -> JSONResponse:
        try:
            lot = inventory_service.ledger_inventory_get_lot(lot_id)
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"lot": api_serialize_lot(lot)}, status_code=status.HTTP_200_OK)

    @router.get("/lots/{lot_id}/movements")
    def api_inventory_movement_list(
        lot_id: UUID,
        limit: int = Query(default=settings.api_default_limit, ge=1),
        offset: int = Query(default=0, ge=0),
    ) -> JSONResponse:
        """List one lot's movements, newest first.

        Args:
            lot_id: Lot identifier.
            limit: Max rows to return, capped at the configured maximum.
            offset: Rows to skip.

        Returns:
            JSONResponse: Movement list envelope payload.
        """

        applied_limit = min(limit, settings.api_max_limit)
        try:
            movements = inventory_service.ledger_inventory_list_movements(lot_id, limit=applied_limit, offset=offset)
        except LedgerError as error:
            return api_build_error_response(error)
        payload = {
            "items": [api_serialize_movement(movement) for movement in movements],
            "page": {
                "limit": limit,
                "applied_limit": applied_limit,
                "offset": offset,
                "returned": len(movements),
            },
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/valuation")
    def api_inventory_valuation(
        commodity_id: UUID | None = Query(default=None),
        warehouse: str | None = Query(default=None),
        location: str | None = Query(default=None),
    ) -> JSONResponse:
        try:
            summary = inventory_service.ledger_inventory_valuation(
                InventoryValuationFilter(commodity_id=commodity_id, warehouse=warehouse, location=location)
            )
        except LedgerError as error:
            return api_build_error_response(error)
        payload = {
            "valuation": api_serialize_valuation(summary),
            "filters": {
                "commodity_id": None if commodity_id is None else str(commodity_id),
                "warehouse": warehouse,
                "location": location,
            },
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router


__all__ = ["api_create_inventory_router"]
