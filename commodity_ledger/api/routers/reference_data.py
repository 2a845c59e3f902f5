"""Commodity and counterparty reference-data router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from commodity_ledger.domain.errors import LedgerError
from commodity_ledger.ledger import ReferenceDataService
from commodity_ledger.ledger.interfaces import (
    CommodityCreateRequest,
    CounterpartyCreateRequest,
    CounterpartyCreditAssessmentRequest,
)

from ..errors import api_build_error_response
from ..schemas import CommodityCreateBody, CommodityPriceBody, CounterpartyCreateBody, CreditAssessmentBody
from ..serializers import api_serialize_commodity, api_serialize_counterparty


def api_create_reference_data_router(reference_service: ReferenceDataService) -> APIRouter:
    """Create router exposing commodity and counterparty commands.

    Args:
        reference_service: Reference-data command service.

    Returns:
        APIRouter: Router exposing `/commodities` and `/counterparties` endpoints.

    Raises:
        ValueError: Raised when reference_service is None.
    """

    if reference_service is None:
        raise ValueError("reference_service must not be None")

    router = APIRouter(tags=["reference-data"])

    @router.post("/commodities")
    def api_commodity_create(body: CommodityCreateBody) -> JSONResponse:
        try:
            commodity = reference_service.ledger_commodity_create(
                CommodityCreateRequest(
                    name=body.name,
                    category=body.category,
                    unit=body.unit,
                    current_price=body.current_price,
                )
            )
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(content={"commodity": api_serialize_commodity(commodity)}, status_code=status.HTTP_201_CREATED)

    @router.post("/commodities/{commodity_id}/price")
    def api_commodity_update_price(commodity_id: UUID, body: CommodityPriceBody) -> JSONResponse:
        try:
            result = reference_service.ledger_commodity_update_price(commodity_id, body.current_price)
        except LedgerError as error:
            return api_build_error_response(error)
        payload = {"commodity": api_serialize_commodity(result.commodity), "lots_revalued": result.lots_revalued}
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.post("/counterparties")
    def api_counterparty_create(body: CounterpartyCreateBody) -> JSONResponse:
        try:
            counterparty = reference_service.ledger_counterparty_create(
                CounterpartyCreateRequest(
                    name=body.name,
                    country=body.country,
                    rating=body.rating,
                    credit_limit=body.credit_limit,
                )
            )
        except LedgerError as error:
            return api_build_error_response(error)
        return JSONResponse(
            content={"counterparty": api_serialize_counterparty(counterparty)},
            status_code=status.HTTP_201_CREATED,
        )

    @router.post("/counterparties/{counterparty_id}/credit-assessment")
    def api_counterparty_assess_credit(counterparty_id: UUID, body: CreditAssessmentBody) -> JSONResponse:
        try:
            result = reference_service.ledger_counterparty_assess_credit(
                counterparty_id,
                CounterpartyCreditAssessmentRequest(rating=body.rating, credit_limit=body.credit_limit),
            )
        except LedgerError as error:
            return api_build_error_response(error)
        payload = {
            "counterparty": api_serialize_counterparty(result.counterparty),
            "available_credit": str(result.available_credit),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router


__all__ = ["api_create_reference_data_router"]
