from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from common.db.database import Base


class PublishedService(Base):
    __tablename__ = "published_services"
    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    application_id = Column(Integer, ForeignKey("service_applications.id"), unique=True, nullable=False)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    title = Column(String(600), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    employee = relationship("User")
    game = relationship("Game", back_populates="published_services")
    application = relationship("ServiceApplication", back_populates="published_service")
