"""Application bootstrap wiring for startup validation and dependency assembly."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import FastAPI

from commodity_ledger.api import create_api_application
from commodity_ledger.config import AppSettings, config_load_settings
from commodity_ledger.db import SQLAlchemyDatabaseHealthService, db_create_engine, db_create_unit_of_work_factory
from commodity_ledger.ledger import (
    ContractExecutionService,
    InventoryLedgerService,
    InventoryMovementEngine,
    ReferenceDataService,
    ShipmentDeliveryService,
    TradeExecutionService,
)
from commodity_ledger.logging_config import logging_configure


@dataclass(frozen=True)
class LedgerServices:
    """Fully wired ledger command services sharing one engine.

    Attributes:
        trade_service: Trade command service.
        contract_service: Contract command service.
        inventory_service: Inventory command service.
        reference_service: Commodity and counterparty command service.
        shipment_service: Shipment command service.
        db_health_service: Database health service.
    """

    trade_service: TradeExecutionService
    contract_service: ContractExecutionService
    inventory_service: InventoryLedgerService
    reference_service: ReferenceDataService
    shipment_service: ShipmentDeliveryService
    db_health_service: SQLAlchemyDatabaseHealthService


def bootstrap_create_services(settings: AppSettings) -> LedgerServices:
    """Build the engine, unit-of-work factory and every ledger service from settings.

    Args:
        settings: Validated runtime settings.

    Returns:
        LedgerServices: Wired services.

    Raises:
        ValueError: Raised when settings carry invalid wiring values.
    """

    engine = db_create_engine(database_url=settings.database_url)
    unit_of_work_factory = db_create_unit_of_work_factory(
        engine=engine,
        isolation_level=settings.database_isolation_level,
    )
    movement_engine = InventoryMovementEngine()
    return LedgerServices(
        trade_service=TradeExecutionService(
            unit_of_work_factory=unit_of_work_factory,
            movement_engine=movement_engine,
            default_warehouse=settings.trade_default_warehouse,
            default_quality=settings.trade_default_quality,
        ),
        contract_service=ContractExecutionService(
            unit_of_work_factory=unit_of_work_factory,
            movement_engine=movement_engine,
            default_warehouse=settings.contract_default_warehouse,
            default_location=settings.contract_default_location,
            default_quality=settings.contract_default_quality,
        ),
        inventory_service=InventoryLedgerService(
            unit_of_work_factory=unit_of_work_factory,
            movement_engine=movement_engine,
        ),
        reference_service=ReferenceDataService(unit_of_work_factory=unit_of_work_factory),
        shipment_service=ShipmentDeliveryService(
            unit_of_work_factory=unit_of_work_factory,
            movement_engine=movement_engine,
            default_quality=settings.shipment_default_quality,
        ),
        db_health_service=SQLAlchemyDatabaseHealthService(engine=engine),
    )


def bootstrap_create_application() -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    settings = config_load_settings()
    logging_configure(level=settings.log_level, json_output=settings.log_json)
    services = bootstrap_create_services(settings)
    return create_api_application(
        settings=settings,
        db_health_service=services.db_health_service,
        trade_service=services.trade_service,
        contract_service=services.contract_service,
        inventory_service=services.inventory_service,
        reference_service=services.reference_service,
        shipment_service=services.shipment_service,
    )
