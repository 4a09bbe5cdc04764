"""
Dinner event: one concrete community dinner on one date.

Key design decisions:
- Unique (season_id, date): schedule generation reconciles by date
- Only SCHEDULED, ANNOUNCED, CONSUMED and CANCELLED are persisted;
  "booking closed" and "groceries done" are derived for display
- Index on date for the rolling-window queries of scaffolding and maintenance
"""

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class DinnerEvent(Base, TimestampMixin):
    __tablename__ = "dinner_events"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    state = Column(String(20), nullable=False, default="SCHEDULED")
    menu_title = Column(String(255), nullable=False, default="TBD")
    cooking_team_id = Column(Integer, ForeignKey("cooking_teams.id", ondelete="SET NULL"), nullable=True)
    chef_id = Column(Integer, ForeignKey("inhabitants.id", ondelete="SET NULL"), nullable=True)

    season = relationship("Season", back_populates="dinner_events")

    __table_args__ = (
        UniqueConstraint("season_id", "date", name="uq_dinner_event_season_date"),
        CheckConstraint(
            "state IN ('SCHEDULED', 'ANNOUNCED', 'CONSUMED', 'CANCELLED')",
            name="check_dinner_event_state",
        ),
        Index("ix_dinner_events_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<DinnerEvent(id={self.id}, date={self.date}, state={self.state}, team={self.cooking_team_id})>"
