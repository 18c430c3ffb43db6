from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func

from common.db.database import Base


class AdminLog(Base):
    __tablename__ = "admin_logs"
    id = Column(Integer, primary_key=True, index=True)
    # No foreign key: rows outlive removed admin accounts
    admin_id = Column(Integer, nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)
    target_type = Column(String(50), nullable=True)
    target_id = Column(Integer, nullable=True)
    details = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
