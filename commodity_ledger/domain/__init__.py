"""Domain models, typed errors and value helpers used across layer boundaries."""

from .models import (
    ContractDirection,
    ContractStatus,
    HealthStatus,
    InventoryMovementKind,
    MovementReference,
    MovementReferenceKind,
    ShipmentStatus,
    TradeDirection,
    TradeStatus,
)

__all__ = [
    "ContractDirection",
    "ContractStatus",
    "HealthStatus",
    "InventoryMovementKind",
    "MovementReference",
    "MovementReferenceKind",
    "ShipmentStatus",
    "TradeDirection",
    "TradeStatus",
]
