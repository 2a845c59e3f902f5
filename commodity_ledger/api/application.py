"""FastAPI application factory for the ledger command API.

This module composes the routers over already-built ledger services; it
holds no business rules.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from commodity_ledger.config import AppSettings
from commodity_ledger.db import DatabaseHealthPort
from commodity_ledger.domain.errors import LedgerValidationError
from commodity_ledger.ledger import (
    ContractExecutionService,
    InventoryLedgerService,
    ReferenceDataService,
    ShipmentDeliveryService,
    TradeExecutionService,
)

from .routers import (
    api_create_contracts_router,
    api_create_health_router,
    api_create_inventory_router,
    api_create_reference_data_router,
    api_create_shipments_router,
    api_create_trades_router,
)


def create_api_application(
    settings: AppSettings,
    db_health_service: DatabaseHealthPort,
    trade_service: TradeExecutionService,
    contract_service: ContractExecutionService,
    inventory_service: InventoryLedgerService,
    reference_service: ReferenceDataService,
    shipment_service: ShipmentDeliveryService,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings used for runtime metadata.
        db_health_service: Database health service used by health endpoints.
        trade_service: Trade command service.
        contract_service: Contract command service.
        inventory_service: Inventory command service.
        reference_service: Commodity and counterparty command service.
        shipment_service: Shipment command service.

    Returns:
        FastAPI: Framework application instance with all ledger routers.
    """

    application = FastAPI(title="Commodity Position Ledger")

    @application.exception_handler(RequestValidationError)
    async def api_request_validation_handler(_request: Request, error: RequestValidationError) -> JSONResponse:
        """Render malformed request bodies with the ledger validation envelope."""

        payload = {
            "status": "error",
            "code": LedgerValidationError.error_code,
            "message": "request validation failed",
            "details": [
                {"location": [str(part) for part in detail.get("loc", ())], "message": str(detail.get("msg", ""))}
                for detail in error.errors()
            ],
        }
        return JSONResponse(content=payload, status_code=status.HTTP_400_BAD_REQUEST)

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        return {
            "service": "commodity-position-ledger",
            "status": "ready",
            "environment": settings.environment_name,
        }

    application.include_router(api_create_health_router(db_health_service=db_health_service))
    application.include_router(api_create_reference_data_router(reference_service=reference_service))
    application.include_router(api_create_trades_router(trade_service=trade_service))
    application.include_router(api_create_contracts_router(contract_service=contract_service))
    application.include_router(api_create_inventory_router(settings=settings, inventory_service=inventory_service))
    application.include_router(api_create_shipments_router(shipment_service=shipment_service))

    return application
