"""Contract command router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from commodity_ledger.domain.errors import LedgerError
from commodity_ledger.ledger import ContractExecutionService
from commodity_ledger.ledger.interfaces import (
    ContractCreateRequest,
    ContractTermsUpdateRequest,
    ContractTrancheRequest,
    InventoryRouting,
)

from ..errors import api_build_error_response
from ..schemas import CancelBody, ContractCreateBody, ContractTermsUpdateBody, ContractTrancheBody
from ..serializers import api_serialize_contract, api_serialize_movement, api_serialize_tranche


def api_create_contracts_router(contract_service: ContractExecutionService) -> APIRouter:
    """Create router exposing contract lifecycle and tranche commands.

    Args:
        contract_service: Contract command service.

    Returns:
        APIRouter: Router exposing `/contracts` endpoints.

    Raises:
        ValueError: Raised when contract_service is None.
    """

    if contract_service is None:
        raise ValueError("contract_service must not be None")

    router = APIRouter(prefix="/contracts", tags=["contracts"])

    @router.post("")
    def api_contract_create(body: ContractCreateBody) -> JSONResponse:
        try:
            contract = contract_service.ledger_contract_create(
                ContractCreateRequest(
                    commodity_id=body.commodity_id,
                    counterparty_id=body.counterparty_id,
                    direction=body.direction,
                    quantity=body.quantity,
                    price=body.price,
                    start_date=body.start_date,
                    end_date=body.end_date,
                    delivery_terms=body.delivery_terms,
                    payment_terms=body.payment_terms,
                )
            )
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"contract": api_serialize_contract(contract)}, status_code=status.HTTP_201_CREATED)

    @router.get("/{contract_id}")
    def api_contract_detail(contract_id: UUID) -> JSONResponse:
        try:
            contract = contract_service.ledger_contract_get(contract_id)
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"contract": api_serialize_contract(contract)}, status_code=status.HTTP_200_OK)

    @router.patch("/{contract_id}")
    def api_contract_update_terms(contract_id: UUID, body: ContractTermsUpdateBody) -> JSONResponse:
        try:
            contract = contract_service.ledger_contract_update_terms(
                contract_id,
                ContractTermsUpdateRequest(
                    quantity=body.quantity,
                    price=body.price,
                    start_date=body.start_date,
                    end_date=body.end_date,
                    delivery_terms=body.delivery_terms,
                    payment_terms=body.payment_terms,
                ),
            )
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"contract": api_serialize_contract(contract)}, status_code=status.HTTP_200_OK)

    @router.post("/{contract_id}/tranches")
    def api_contract_execute_tranche(contract_id: UUID, body: ContractTrancheBody) -> JSONResponse:
        """Execute one contract tranche.

        Args:
            contract_id: Contract identifier.
            body: Tranche quantity, optional trade link, notes and lot routing.

        Returns:
            JSONResponse: Updated contract, tranche row and posted movements.
        """

        routing = None
        if body.routing is not None:
            routing = InventoryRouting(
                warehouse=body.routing.warehouse,
                location=body.routing.location,
                quality=body.routing.quality,
            )
        try:
            result = contract_service.ledger_contract_execute_tranche(
                contract_id,
                ContractTrancheRequest(
                    quantity=body.quantity,
                    execution_date=body.execution_date,
                    trade_id=body.trade_id,
                    notes=body.notes,
                    routing=routing,
                ),
            )
        except LedgerError as error:
            return api_build_error_response(error)
        payload = {
            "contract": api_serialize_contract(result.contract),
            "tranche": api_serialize_tranche(result.tranche),
            "movements": [api_serialize_movement(movement) for movement in result.movements],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_201_CREATED)

    @router.get("/{contract_id}/tranches")
    def api_contract_tranche_list(contract_id: UUID) -> JSONResponse:
        try:
            tranches = contract_service.ledger_contract_list_tranches(contract_id)
        except LedgerError as error:
            return api_build_error_response(error)
        payload = {"items": [api_serialize_tranche(tranche) for tranche in tranches]}
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/{contract_id}/cancel")
    def api_contract_cancel(contract_id: UUID, body: CancelBody | None = None) -> JSONResponse:
        try:
            contract = contract_service.ledger_contract_cancel(contract_id, reason=None if body is None else body.reason)
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"contract": api_serialize_contract(contract)}, status_code=status.HTTP_200_OK)

    return router


__all__ = ["api_create_contracts_router"]
