"""Typed domain vocabulary shared across runtime layers.

Enumerations use `str` mix-ins so their values compare equal to the text
stored in PostgreSQL and rendered by the API.
"""

from dataclasses import dataclass
from enum import Enum


class TradeDirection(str, Enum):
    """Side of a trade."""

    BUY = "BUY"
    SELL = "SELL"


class TradeStatus(str, Enum):
    """Trade lifecycle state."""

    OPEN = "OPEN"
    EXECUTED = "EXECUTED"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"


class ContractDirection(str, Enum):
    """Side of a contract."""

    PURCHASE = "PURCHASE"
    SALE = "SALE"


class ContractStatus(str, Enum):
    """Contract lifecycle state."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class InventoryMovementKind(str, Enum):
    """Kind of quantity change applied to one inventory lot."""

    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class MovementReferenceKind(str, Enum):
    """Business object that triggered an inventory movement."""

    TRADE = "TRADE"
    CONTRACT = "CONTRACT"
    SHIPMENT = "SHIPMENT"
    MANUAL = "MANUAL"


class ShipmentStatus(str, Enum):
    """Shipment lifecycle state."""

    PREPARING = "PREPARING"
    IN_TRANSIT = "IN_TRANSIT"
    DELAYED = "DELAYED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class HealthStatus:
    """Health response contract used by health-check surfaces.

    Attributes:
        status: Overall status text for service health.
        detail: Additional message suitable for operational diagnostics.
    """

    status: str
    detail: str


@dataclass(frozen=True)
class MovementReference:
    """Reference tag attached to an inventory movement.

    Attributes:
        reference_kind: Kind of triggering business object.
        reference_id: Identifier of the triggering object.
    """

    reference_kind: MovementReferenceKind
    reference_id: str
