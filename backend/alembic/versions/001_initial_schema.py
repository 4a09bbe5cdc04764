"""Initial schema: seasons, calendar, teams, households, orders and order history.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "seasons",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("short_name", sa.String(50), nullable=False, unique=True),
        sa.Column("season_start", sa.Date(), nullable=False),
        sa.Column("season_end", sa.Date(), nullable=False),
        sa.Column("cooking_days", sa.JSON(), nullable=False),
        sa.Column("holidays", sa.JSON(), nullable=False),
        sa.Column("consecutive_cooking_days", sa.Integer(), nullable=False, server_default=sa.text("2")),
        sa.Column("ticket_is_cancellable_days_before", sa.Integer(), nullable=False, server_default=sa.text("8")),
        sa.Column("dining_mode_is_editable_minutes_before", sa.Integer(), nullable=False, server_default=sa.text("90")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.CheckConstraint("season_start <= season_end", name="check_season_dates_ordered"),
        sa.CheckConstraint("consecutive_cooking_days >= 1", name="check_consecutive_cooking_days_positive"),
        sa.CheckConstraint("ticket_is_cancellable_days_before >= 0", name="check_cancellable_days_non_negative"),
    )
    op.create_index("ix_seasons_id", "seasons", ["id"])
    op.create_index("ix_seasons_is_active", "seasons", ["is_active"])

    op.create_table(
        "ticket_prices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("season_id", sa.Integer(), sa.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ticket_type", sa.String(10), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("maximum_age_limit", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="check_ticket_price_non_negative"),
        sa.CheckConstraint("ticket_type IN ('ADULT', 'CHILD', 'BABY')", name="check_ticket_type"),
    )
    op.create_index("ix_ticket_prices_id", "ticket_prices", ["id"])
    op.create_index("ix_ticket_prices_season_id", "ticket_prices", ["season_id"])

    op.create_table(
        "households",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(255), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_index("ix_households_id", "households", ["id"])

    op.create_table(
        "inhabitants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("household_id", sa.Integer(), sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("dinner_preferences", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_inhabitants_id", "inhabitants", ["id"])
    op.create_index("ix_inhabitants_household_id", "inhabitants", ["household_id"])

    op.create_table(
        "cooking_teams",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("season_id", sa.Integer(), sa.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("affinity", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("season_id", "name", name="uq_cooking_team_season_name"),
    )
    op.create_index("ix_cooking_teams_id", "cooking_teams", ["id"])
    op.create_index("ix_cooking_teams_season_id", "cooking_teams", ["season_id"])

    op.create_table(
        "cooking_team_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "cooking_team_id", sa.Integer(), sa.ForeignKey("cooking_teams.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("inhabitant_id", sa.Integer(), sa.ForeignKey("inhabitants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("allocation_percentage", sa.Integer(), nullable=False, server_default=sa.text("100")),
        sa.Column("affinity", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("cooking_team_id", "inhabitant_id", name="uq_team_member"),
        sa.CheckConstraint("role IN ('CHEF', 'COOK', 'JUNIORHELPER')", name="check_team_role"),
        sa.CheckConstraint(
            "allocation_percentage > 0 AND allocation_percentage <= 100",
            name="check_allocation_percentage_range",
        ),
    )
    op.create_index("ix_cooking_team_assignments_id", "cooking_team_assignments", ["id"])
    op.create_index("ix_cooking_team_assignments_cooking_team_id", "cooking_team_assignments", ["cooking_team_id"])
    op.create_index("ix_cooking_team_assignments_inhabitant_id", "cooking_team_assignments", ["inhabitant_id"])

    op.create_table(
        "dinner_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("season_id", sa.Integer(), sa.ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("state", sa.String(20), nullable=False, server_default="SCHEDULED"),
        sa.Column("menu_title", sa.String(255), nullable=False, server_default="TBD"),
        sa.Column(
            "cooking_team_id", sa.Integer(), sa.ForeignKey("cooking_teams.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("chef_id", sa.Integer(), sa.ForeignKey("inhabitants.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("season_id", "date", name="uq_dinner_event_season_date"),
        sa.CheckConstraint(
            "state IN ('SCHEDULED', 'ANNOUNCED', 'CONSUMED', 'CANCELLED')",
            name="check_dinner_event_state",
        ),
    )
    op.create_index("ix_dinner_events_id", "dinner_events", ["id"])
    op.create_index("ix_dinner_events_season_id", "dinner_events", ["season_id"])
    # Scaffolding and the daily job scan a rolling window of dates
    op.create_index("ix_dinner_events_date", "dinner_events", ["date"])

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("inhabitant_id", sa.Integer(), sa.ForeignKey("inhabitants.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "dinner_event_id", sa.Integer(), sa.ForeignKey("dinner_events.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "ticket_price_id", sa.Integer(), sa.ForeignKey("ticket_prices.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("booked_by_user_id", sa.Integer(), nullable=True),
        sa.Column("dinner_mode", sa.String(20), nullable=False, server_default="DINEIN"),
        sa.Column("state", sa.String(20), nullable=False, server_default="BOOKED"),
        sa.Column("is_guest_ticket", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("price_at_booking", sa.Integer(), nullable=False),
        sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("state IN ('BOOKED', 'RELEASED')", name="check_order_state"),
        sa.CheckConstraint(
            "dinner_mode IN ('DINEIN', 'DINEINLATE', 'TAKEAWAY', 'NONE')",
            name="check_order_dinner_mode",
        ),
        sa.CheckConstraint("price_at_booking >= 0", name="check_price_at_booking_non_negative"),
    )
    op.create_index("ix_orders_id", "orders", ["id"])
    op.create_index("ix_orders_inhabitant_id", "orders", ["inhabitant_id"])
    op.create_index("ix_orders_dinner_event_id", "orders", ["dinner_event_id"])
    # One logical slot per inhabitant and dinner; guest tickets are extra rows
    op.create_index(
        "uq_order_inhabitant_dinner",
        "orders",
        ["inhabitant_id", "dinner_event_id"],
        unique=True,
        postgresql_where=sa.text("NOT is_guest_ticket"),
    )

    op.create_table(
        "order_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer(), nullable=True),
        sa.Column("inhabitant_id", sa.Integer(), nullable=False),
        sa.Column("dinner_event_id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("performed_by_user_id", sa.Integer(), nullable=True),
        sa.Column("audit_data", sa.JSON(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_order_history_id", "order_history", ["id"])
    op.create_index("ix_order_history_season_action", "order_history", ["season_id", "action"])
    op.create_index("ix_order_history_slot", "order_history", ["inhabitant_id", "dinner_event_id"])


def downgrade() -> None:
    op.drop_table("order_history")
    op.drop_index("uq_order_inhabitant_dinner", table_name="orders")
    op.drop_table("orders")
    op.drop_table("dinner_events")
    op.drop_table("cooking_team_assignments")
    op.drop_table("cooking_teams")
    op.drop_table("inhabitants")
    op.drop_table("households")
    op.drop_table("ticket_prices")
    op.drop_table("seasons")
