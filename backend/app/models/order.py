"""
Orders (tickets for one inhabitant at one dinner) and their audit trail.

Key design decisions:
- Partial unique index on (inhabitant_id, dinner_event_id) for non-guest
  orders: one logical slot per inhabitant per dinner; guest tickets are extra
  rows and are not constrained
- `price_at_booking` is the billing snapshot, only re-captured when the
  ticket price itself changes
- `version` column enables optimistic locking for concurrent reconciliation
- RELEASED orders are kept (soft cancel after the deadline)
- OrderHistory has no foreign key to orders: it outlives hard deletes and is
  never updated or deleted
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    func,
    text,
)

from app.db.base import Base, TimestampMixin


class Order(Base, TimestampMixin):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    inhabitant_id = Column(Integer, ForeignKey("inhabitants.id", ondelete="CASCADE"), nullable=False, index=True)
    dinner_event_id = Column(Integer, ForeignKey("dinner_events.id", ondelete="CASCADE"), nullable=False, index=True)
    ticket_price_id = Column(Integer, ForeignKey("ticket_prices.id", ondelete="SET NULL"), nullable=True)
    booked_by_user_id = Column(Integer, nullable=True)
    dinner_mode = Column(String(20), nullable=False, default="DINEIN")
    state = Column(String(20), nullable=False, default="BOOKED")
    is_guest_ticket = Column(Boolean, nullable=False, default=False)
    price_at_booking = Column(Integer, nullable=False)
    released_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index(
            "uq_order_inhabitant_dinner",
            "inhabitant_id",
            "dinner_event_id",
            unique=True,
            postgresql_where=text("NOT is_guest_ticket"),
            sqlite_where=text("is_guest_ticket = 0"),
        ),
        CheckConstraint("state IN ('BOOKED', 'RELEASED')", name="check_order_state"),
        CheckConstraint(
            "dinner_mode IN ('DINEIN', 'DINEINLATE', 'TAKEAWAY', 'NONE')",
            name="check_order_dinner_mode",
        ),
        CheckConstraint("price_at_booking >= 0", name="check_price_at_booking_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id}, inhabitant={self.inhabitant_id}, dinner={self.dinner_event_id}, "
            f"mode={self.dinner_mode}, state={self.state})>"
        )


class OrderHistory(Base):
    __tablename__ = "order_history"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, nullable=True)
    inhabitant_id = Column(Integer, nullable=False)
    dinner_event_id = Column(Integer, nullable=False)
    season_id = Column(Integer, nullable=False)
    action = Column(String(30), nullable=False)
    performed_by_user_id = Column(Integer, nullable=True)
    audit_data = Column(JSON, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        # Latest user action per slot is looked up by season and by slot
        Index("ix_order_history_season_action", "season_id", "action"),
        Index("ix_order_history_slot", "inhabitant_id", "dinner_event_id"),
    )

    def __repr__(self) -> str:
        return f"<OrderHistory(id={self.id}, order={self.order_id}, action={self.action})>"
