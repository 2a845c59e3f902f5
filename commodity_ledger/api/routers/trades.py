"""Trade command router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from commodity_ledger.domain.errors import LedgerError
from commodity_ledger.ledger import TradeExecutionService
from commodity_ledger.ledger.interfaces import InventoryRouting, TradeCreateRequest, TradeTermsUpdateRequest

from ..errors import api_build_error_response
from ..schemas import CancelBody, TradeCreateBody, TradeExecuteBody, TradeTermsUpdateBody
from ..serializers import api_serialize_movement, api_serialize_trade


def api_create_trades_router(trade_service: TradeExecutionService) -> APIRouter:
    """Create router exposing trade lifecycle commands.

    Args:
        trade_service: Trade command service.

    Returns:
        APIRouter: Router exposing `/trades` endpoints.

    Raises:
        ValueError: Raised when trade_service is None.
    """

    if trade_service is None:
        raise ValueError("trade_service must not be None")

    router = APIRouter(prefix="/trades", tags=["trades"])

    @router.post("")
    def api_trade_create(body: TradeCreateBody) -> JSONResponse:
        try:
            trade = trade_service.ledger_trade_create(
                TradeCreateRequest(
                    commodity_id=body.commodity_id,
                    counterparty_id=body.counterparty_id,
                    direction=body.direction,
                    quantity=body.quantity,
                    price=body.price,
                    settlement_date=body.settlement_date,
                    location=body.location,
                )
            )
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"trade": api_serialize_trade(trade)}, status_code=status.HTTP_201_CREATED)

    @router.get("/{trade_id}")
    def api_trade_detail(trade_id: UUID) -> JSONResponse:
        try:
            trade = trade_service.ledger_trade_get(trade_id)
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"trade": api_serialize_trade(trade)}, status_code=status.HTTP_200_OK)

    @router.patch("/{trade_id}")
    def api_trade_update_terms(trade_id: UUID, body: TradeTermsUpdateBody) -> JSONResponse:
        try:
            trade = trade_service.ledger_trade_update_terms(
                trade_id,
                TradeTermsUpdateRequest(
                    quantity=body.quantity,
                    price=body.price,
                    settlement_date=body.settlement_date,
                    location=body.location,
                ),
            )
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"trade": api_serialize_trade(trade)}, status_code=status.HTTP_200_OK)

    @router.post("/{trade_id}/execute")
    def api_trade_execute(trade_id: UUID, body: TradeExecuteBody | None = None) -> JSONResponse:
        """Execute one OPEN trade and return the movements it posted.

        Args:
            trade_id: Trade identifier.
            body: Optional lot routing overrides.

        Returns:
            JSONResponse: Executed trade and movement payloads.
        """

        routing = None
        if body is not None and body.routing is not None:
            routing = InventoryRouting(
                warehouse=body.routing.warehouse,
                location=body.routing.location,
                quality=body.routing.quality,
            )
        try:
            result = trade_service.ledger_trade_execute(trade_id, routing=routing)
        except LedgerError as error:
            return api_build_error_response(error)
        payload = {
            "trade": api_serialize_trade(result.trade),
            "movements": [api_serialize_movement(movement) for movement in result.movements],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/{trade_id}/cancel")
    def api_trade_cancel(trade_id: UUID, body: CancelBody | None = None) -> JSONResponse:
        try:
            trade = trade_service.ledger_trade_cancel(trade_id, reason=None if body is None else body.reason)
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"trade": api_serialize_trade(trade)}, status_code=status.HTTP_200_OK)

    @router.post("/{trade_id}/settle")
    def api_trade_settle(trade_id: UUID) -> JSONResponse:
        try:
            trade = trade_service.ledger_trade_settle(trade_id)
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"trade": api_serialize_trade(trade)}, status_code=status.HTTP_200_OK)

    return router


__all__ = ["api_create_trades_router"]
