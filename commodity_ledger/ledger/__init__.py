"""Ledger layer: inventory movements, lot allocation, credit control and command services."""

from .contract_execution import ContractExecutionService
from .credit_control import credit_adjust_trade, credit_available, credit_release_trade, credit_reserve_trade
from .inventory_service import InventoryLedgerService
from .lot_allocator import (
    LotAllocation,
    LotAllocationCandidate,
    allocator_allocate_for_sell,
    allocator_candidates_from_lots,
)
from .movement_engine import InventoryMovementEngine, MovementComputation, movement_compute, movement_parse_kind
from .reference_data import ReferenceDataService
from .shipment_delivery import ShipmentDeliveryService
from .trade_execution import TradeExecutionService

__all__ = [
    "ContractExecutionService",
    "InventoryLedgerService",
    "InventoryMovementEngine",
    "LotAllocation",
    "LotAllocationCandidate",
    "MovementComputation",
    "ReferenceDataService",
    "ShipmentDeliveryService",
    "TradeExecutionService",
    "allocator_allocate_for_sell",
    "allocator_candidates_from_lots",
    "credit_adjust_trade",
    "credit_available",
    "credit_release_trade",
    "credit_reserve_trade",
    "movement_compute",
    "movement_parse_kind",
]
