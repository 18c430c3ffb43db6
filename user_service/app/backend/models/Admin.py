from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func

from common.db.database import Base


class Admin(Base):
    __tablename__ = "admin"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(600), unique=True, nullable=False, index=True)
    password_hash = Column(String(60), nullable=False)
    full_name = Column(String(600), nullable=False)
    role = Column(String(20), nullable=False, default="regular")
    # False means blocked (too many failed logins) or deactivated by a super admin
    is_active = Column(Boolean, nullable=False, default=True)
    failed_login_attempts = Column(Integer, nullable=False, default=0)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
