"""Ledger schema baseline

Revision ID: 20261017_01
Revises: None
Create Date: 2026-10-17
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261017_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_PRICE = sa.Numeric(20, 6)
_COST_BASIS = sa.Numeric(28, 10)
_MONEY = sa.Numeric(20, 2)
_PERCENT = sa.Numeric(12, 4)


def _uuid_primary_key(column_name: str) -> sa.Column:
    return sa.Column(column_name, postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _timestamp(column_name: str) -> sa.Column:
    return sa.Column(column_name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def upgrade() -> None:
    """Upgrade schema."""

    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "commodity",
        _uuid_primary_key("commodity_id"),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("unit", sa.Text(), nullable=False),
        sa.Column("current_price", _PRICE, nullable=False),
        sa.Column("price_change", _PRICE, nullable=False, server_default=sa.text("0")),
        sa.Column("price_change_percent", _PERCENT, nullable=False, server_default=sa.text("0")),
        _timestamp("created_at_utc"),
        _timestamp("updated_at_utc"),
        sa.UniqueConstraint("name", name="uq_commodity_name"),
        sa.CheckConstraint("current_price >= 0", name="ck_commodity_current_price_non_negative"),
    )

    op.create_table(
        "counterparty",
        _uuid_primary_key("counterparty_id"),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("country", sa.Text(), nullable=False),
        sa.Column("rating", sa.Text(), nullable=False),
        sa.Column("credit_limit", _MONEY, nullable=False),
        sa.Column("credit_used", _MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("total_trades", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_volume", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_trade_date", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at_utc"),
        _timestamp("updated_at_utc"),
        sa.UniqueConstraint("name", name="uq_counterparty_name"),
        sa.CheckConstraint(
            "credit_used >= 0 AND credit_used <= credit_limit",
            name="ck_counterparty_credit_used_within_limit",
        ),
        sa.CheckConstraint("total_trades >= 0 AND total_volume >= 0", name="ck_counterparty_totals_non_negative"),
    )

    op.create_table(
        "inventory_lot",
        _uuid_primary_key("lot_id"),
        sa.Column("commodity_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("commodity.commodity_id"), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=False),
        sa.Column("unit", sa.Text(), nullable=False),
        sa.Column("warehouse", sa.Text(), nullable=False),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("quality", sa.Text(), nullable=False),
        sa.Column("cost_basis", _COST_BASIS, nullable=False),
        sa.Column("market_value", _PRICE, nullable=False),
        _timestamp("created_at_utc"),
        _timestamp("last_updated_utc"),
        sa.UniqueConstraint("commodity_id", "warehouse", "location", "quality", name="uq_inventory_lot_identity"),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_lot_quantity_non_negative"),
        sa.CheckConstraint("cost_basis >= 0 AND market_value >= 0", name="ck_inventory_lot_values_non_negative"),
    )
    op.create_index("ix_inventory_lot_commodity_created", "inventory_lot", ["commodity_id", "created_at_utc", "lot_id"])

    op.create_table(
        "inventory_movement",
        _uuid_primary_key("movement_id"),
        sa.Column("movement_seq", sa.BigInteger(), sa.Identity(always=True), nullable=False),
        sa.Column("lot_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("inventory_lot.lot_id"), nullable=False),
        sa.Column("movement_kind", sa.Text(), nullable=False),
        sa.Column("quantity_delta", sa.BigInteger(), nullable=False),
        sa.Column("resulting_quantity", sa.BigInteger(), nullable=False),
        sa.Column("unit_cost", _COST_BASIS, nullable=True),
        sa.Column("unit_market_value", _PRICE, nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("reference_kind", sa.Text(), nullable=True),
        sa.Column("reference_id", sa.Text(), nullable=True),
        _timestamp("created_at_utc"),
        sa.UniqueConstraint("movement_seq", name="uq_inventory_movement_seq"),
        sa.CheckConstraint("movement_kind in ('IN', 'OUT', 'ADJUSTMENT')", name="ck_inventory_movement_kind"),
        sa.CheckConstraint("resulting_quantity >= 0", name="ck_inventory_movement_resulting_non_negative"),
        sa.CheckConstraint(
            "reference_kind IS NULL OR reference_kind in ('TRADE', 'CONTRACT', 'SHIPMENT', 'MANUAL')",
            name="ck_inventory_movement_reference_kind",
        ),
        sa.CheckConstraint(
            "(reference_kind IS NULL) = (reference_id IS NULL)",
            name="ck_inventory_movement_reference_pair",
        ),
    )
    op.create_index("ix_inventory_movement_lot_seq", "inventory_movement", ["lot_id", "movement_seq"])
    op.create_index("ix_inventory_movement_reference", "inventory_movement", ["reference_kind", "reference_id"])

    op.create_table(
        "trade",
        _uuid_primary_key("trade_id"),
        sa.Column("commodity_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("commodity.commodity_id"), nullable=False),
        sa.Column(
            "counterparty_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("counterparty.counterparty_id"),
            nullable=False,
        ),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=False),
        sa.Column("price", _PRICE, nullable=False),
        sa.Column("total_value", _MONEY, nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("traded_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("settlement_date", sa.Date(), nullable=False),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        _timestamp("created_at_utc"),
        _timestamp("updated_at_utc"),
        sa.CheckConstraint("direction in ('BUY', 'SELL')", name="ck_trade_direction"),
        sa.CheckConstraint("status in ('OPEN', 'EXECUTED', 'SETTLED', 'CANCELLED')", name="ck_trade_status"),
        sa.CheckConstraint("quantity > 0 AND price > 0", name="ck_trade_quantity_price_positive"),
    )
    op.create_index("ix_trade_counterparty_status", "trade", ["counterparty_id", "status"])

    op.create_table(
        "contract",
        _uuid_primary_key("contract_id"),
        sa.Column("commodity_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("commodity.commodity_id"), nullable=False),
        sa.Column(
            "counterparty_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("counterparty.counterparty_id"),
            nullable=False,
        ),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=False),
        sa.Column("price", _PRICE, nullable=False),
        sa.Column("total_value", _MONEY, nullable=False),
        sa.Column("executed", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("remaining", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("delivery_terms", sa.Text(), nullable=False),
        sa.Column("payment_terms", sa.Text(), nullable=False),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        _timestamp("created_at_utc"),
        _timestamp("updated_at_utc"),
        sa.CheckConstraint("direction in ('PURCHASE', 'SALE')", name="ck_contract_direction"),
        sa.CheckConstraint("status in ('ACTIVE', 'COMPLETED', 'CANCELLED')", name="ck_contract_status"),
        sa.CheckConstraint("executed + remaining = quantity", name="ck_contract_executed_remaining_balance"),
        sa.CheckConstraint("executed >= 0 AND remaining >= 0", name="ck_contract_executed_remaining_non_negative"),
        sa.CheckConstraint("end_date > start_date", name="ck_contract_date_range"),
    )

    op.create_table(
        "contract_tranche",
        _uuid_primary_key("tranche_id"),
        sa.Column("tranche_seq", sa.BigInteger(), sa.Identity(always=True), nullable=False),
        sa.Column("contract_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("contract.contract_id"), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=False),
        sa.Column("price", _PRICE, nullable=False),
        sa.Column("execution_date", sa.Date(), nullable=False),
        sa.Column("trade_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("trade.trade_id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at_utc"),
        sa.UniqueConstraint("tranche_seq", name="uq_contract_tranche_seq"),
        sa.CheckConstraint("quantity > 0", name="ck_contract_tranche_quantity_positive"),
    )
    op.create_index("ix_contract_tranche_contract_seq", "contract_tranche", ["contract_id", "tranche_seq"])

    op.create_table(
        "shipment",
        _uuid_primary_key("shipment_id"),
        sa.Column("trade_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("trade.trade_id"), nullable=True),
        sa.Column("commodity_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("commodity.commodity_id"), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=False),
        sa.Column("origin", sa.Text(), nullable=False),
        sa.Column("destination", sa.Text(), nullable=False),
        sa.Column("carrier", sa.Text(), nullable=False),
        sa.Column("tracking_number", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("expected_arrival", sa.Date(), nullable=False),
        sa.Column("departure_date", sa.Date(), nullable=True),
        sa.Column("actual_arrival", sa.Date(), nullable=True),
        _timestamp("created_at_utc"),
        _timestamp("updated_at_utc"),
        sa.UniqueConstraint("tracking_number", name="uq_shipment_tracking_number"),
        sa.CheckConstraint(
            "status in ('PREPARING', 'IN_TRANSIT', 'DELAYED', 'DELIVERED', 'CANCELLED')",
            name="ck_shipment_status",
        ),
        sa.CheckConstraint("quantity > 0", name="ck_shipment_quantity_positive"),
    )
    op.create_index("ix_shipment_trade", "shipment", ["trade_id"])

    op.create_table(
        "shipment_event",
        _uuid_primary_key("event_id"),
        sa.Column("event_seq", sa.BigInteger(), sa.Identity(always=True), nullable=False),
        sa.Column("shipment_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("shipment.shipment_id"), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("recorded_at_utc"),
        sa.UniqueConstraint("event_seq", name="uq_shipment_event_seq"),
        sa.CheckConstraint(
            "status in ('PREPARING', 'IN_TRANSIT', 'DELAYED', 'DELIVERED', 'CANCELLED')",
            name="ck_shipment_event_status",
        ),
    )
    op.create_index("ix_shipment_event_shipment_seq", "shipment_event", ["shipment_id", "event_seq"])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_shipment_event_shipment_seq", table_name="shipment_event")
    op.drop_table("shipment_event")
    op.drop_index("ix_shipment_trade", table_name="shipment")
    op.drop_table("shipment")
    op.drop_index("ix_contract_tranche_contract_seq", table_name="contract_tranche")
    op.drop_table("contract_tranche")
    op.drop_table("contract")
    op.drop_index("ix_trade_counterparty_status", table_name="trade")
    op.drop_table("trade")
    op.drop_index("ix_inventory_movement_reference", table_name="inventory_movement")
    op.drop_index("ix_inventory_movement_lot_seq", table_name="inventory_movement")
    op.drop_table("inventory_movement")
    op.drop_index("ix_inventory_lot_commodity_created", table_name="inventory_lot")
    op.drop_table("inventory_lot")
    op.drop_table("counterparty")
    op.drop_table("commodity")
