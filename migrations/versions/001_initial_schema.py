"""Initial schema: vehicles, rides and the RFID tap log.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("location", sa.JSON, nullable=True),
        sa.Column("heading", sa.Float, nullable=True),
        sa.Column("speed", sa.Float, nullable=True),
        sa.Column("battery", sa.Float, nullable=True),
        sa.Column("ir_reading", sa.Float, nullable=True),
        sa.Column("last_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "is_available", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        sa.Column("current_ride", sa.String(64), nullable=True),
        sa.Column("capacity", sa.Integer, nullable=False, server_default="10"),
    )
    op.create_index("idx_vehicles_available", "vehicles", ["is_available"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("pickup_location", sa.JSON, nullable=False),
        sa.Column("destination_location", sa.JSON, nullable=False),
        sa.Column("passenger_count", sa.Integer, nullable=False),
        sa.Column(
            "rfid_verified", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "status", sa.String(32), nullable=False, server_default="confirmed"
        ),
        sa.Column("estimated_time", sa.Float, nullable=True),
        sa.Column("fare", sa.Float, nullable=True),
        sa.Column("vehicle_id", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_rides_vehicle_status", "rides", ["vehicle_id", "status"]
    )
    op.create_index("idx_rides_created", "rides", ["created_at"])

    # ── rfid_taps ─────────────────────────────────────────────────────
    op.create_table(
        "rfid_taps",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("card_id", sa.String(64), nullable=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column("is_verified", sa.Boolean, server_default=sa.false()),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_rfid_taps_timestamp", "rfid_taps", ["timestamp"])


def downgrade() -> None:
    op.drop_table("rfid_taps")
    op.drop_table("rides")
    op.drop_table("vehicles")
