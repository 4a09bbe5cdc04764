"""
Households and the inhabitants living in them.

`dinner_preferences` is a JSON weekday map of dinner modes
({"monday": "DINEIN", ...}). Null means no preference has been set; it is
read as DINEIN on every cooking day.
"""

from sqlalchemy import Column, Date, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Household(Base, TimestampMixin):
    __tablename__ = "households"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False, unique=True)

    inhabitants = relationship(
        "Inhabitant",
        back_populates="household",
        cascade="all, delete-orphan",
        order_by="Inhabitant.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Household(id={self.id}, address={self.address})>"


class Inhabitant(Base, TimestampMixin):
    __tablename__ = "inhabitants"

    id = Column(Integer, primary_key=True, index=True)
    household_id = Column(Integer, ForeignKey("households.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    birth_date = Column(Date, nullable=True)
    dinner_preferences = Column(JSON, nullable=True)

    household = relationship("Household", back_populates="inhabitants")

    def __repr__(self) -> str:
        return f"<Inhabitant(id={self.id}, name={self.name}, household={self.household_id})>"
