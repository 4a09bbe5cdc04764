"""
Season model with its ticket price list.

Key design decisions:
- `cooking_days` is a JSON weekday map ({"monday": true, ...})
- `holidays` is a JSON list of {"start": iso, "end": iso} ranges, ordered
- Dinner events, cooking teams and ticket prices are owned by the season
  and go with it (cascade delete)
- Only one season is active at a time; enforced by the activation service
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Index, Integer, JSON, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Season(Base, TimestampMixin):
    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, index=True)
    short_name = Column(String(50), nullable=False, unique=True)
    season_start = Column(Date, nullable=False)
    season_end = Column(Date, nullable=False)
    cooking_days = Column(JSON, nullable=False)
    holidays = Column(JSON, nullable=False, default=list)
    consecutive_cooking_days = Column(Integer, nullable=False, default=2)
    ticket_is_cancellable_days_before = Column(Integer, nullable=False, default=8)
    dining_mode_is_editable_minutes_before = Column(Integer, nullable=False, default=90)
    is_active = Column(Boolean, nullable=False, default=False)

    ticket_prices = relationship(
        "TicketPrice",
        back_populates="season",
        cascade="all, delete-orphan",
        order_by="TicketPrice.id",
        lazy="selectin",
    )
    dinner_events = relationship("DinnerEvent", back_populates="season", cascade="all, delete-orphan")
    cooking_teams = relationship("CookingTeam", back_populates="season", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("season_start <= season_end", name="check_season_dates_ordered"),
        CheckConstraint("consecutive_cooking_days >= 1", name="check_consecutive_cooking_days_positive"),
        CheckConstraint("ticket_is_cancellable_days_before >= 0", name="check_cancellable_days_non_negative"),
        Index("ix_seasons_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Season(id={self.id}, name={self.short_name}, active={self.is_active})>"


class TicketPrice(Base, TimestampMixin):
    __tablename__ = "ticket_prices"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False, index=True)
    ticket_type = Column(String(10), nullable=False)  # ADULT, CHILD, BABY
    description = Column(String(255), nullable=True)
    price = Column(Integer, nullable=False)  # øre
    maximum_age_limit = Column(Integer, nullable=True)  # null = adult, no upper bound

    season = relationship("Season", back_populates="ticket_prices")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_ticket_price_non_negative"),
        CheckConstraint("ticket_type IN ('ADULT', 'CHILD', 'BABY')", name="check_ticket_type"),
    )

    def __repr__(self) -> str:
        return f"<TicketPrice(id={self.id}, type={self.ticket_type}, price={self.price})>"
