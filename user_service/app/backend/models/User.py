from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from common.db.database import Base

ACCOUNT_STATUSES = ("active", "suspended", "banned", "blocked")


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(600), unique=True, nullable=False, index=True)
    password_hash = Column(String(60), nullable=False)
    full_name = Column(String(600), nullable=False)
    is_employee = Column(Boolean, nullable=False, default=False)
    account_status = Column(String(20), nullable=False, default="active")
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    wallet_balance = Column(Numeric(12, 2), nullable=False, default=0)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    employee_profile = relationship("EmployeeProfile", back_populates="user", uselist=False)
