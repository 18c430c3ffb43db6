from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from common.db.database import Base


class EmployeeProfile(Base):
    __tablename__ = "employee_profiles"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    bio = Column(Text, nullable=True)
    rating = Column(Numeric(3, 2), nullable=False, default=0)
    total_reviews = Column(Integer, nullable=False, default=0)
    total_services_completed = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")
    is_verified = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="employee_profile")


class EmployeeSpecialization(Base):
    __tablename__ = "employee_specializations"
    __table_args__ = (UniqueConstraint("employee_id", "game_id", name="uq_employee_game"),)
    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False)
    rank_in_game = Column(String(600), nullable=True)
    years_in_game = Column(Integer, nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)

    game = relationship("Game")
