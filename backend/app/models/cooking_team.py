"""
Cooking teams and their member assignments.

`affinity` is a nullable JSON weekday map. Null means "not assigned yet";
the rotation service only ever fills nulls, never rewrites a set affinity.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class CookingTeam(Base, TimestampMixin):
    __tablename__ = "cooking_teams"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    affinity = Column(JSON, nullable=True)

    season = relationship("Season", back_populates="cooking_teams")
    assignments = relationship(
        "CookingTeamAssignment",
        back_populates="team",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("season_id", "name", name="uq_cooking_team_season_name"),
    )

    def __repr__(self) -> str:
        return f"<CookingTeam(id={self.id}, name={self.name})>"


class CookingTeamAssignment(Base, TimestampMixin):
    __tablename__ = "cooking_team_assignments"

    id = Column(Integer, primary_key=True, index=True)
    cooking_team_id = Column(Integer, ForeignKey("cooking_teams.id", ondelete="CASCADE"), nullable=False, index=True)
    inhabitant_id = Column(Integer, ForeignKey("inhabitants.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # CHEF, COOK, JUNIORHELPER
    allocation_percentage = Column(Integer, nullable=False, default=100)
    affinity = Column(JSON, nullable=True)

    team = relationship("CookingTeam", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("cooking_team_id", "inhabitant_id", name="uq_team_member"),
        CheckConstraint("role IN ('CHEF', 'COOK', 'JUNIORHELPER')", name="check_team_role"),
        CheckConstraint(
            "allocation_percentage > 0 AND allocation_percentage <= 100",
            name="check_allocation_percentage_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<CookingTeamAssignment(team={self.cooking_team_id}, inhabitant={self.inhabitant_id}, role={self.role})>"
