from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from common.db.database import Base


class Game(Base):
    __tablename__ = "games"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(600), nullable=False)
    slug = Column(String(600), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    genre = Column(String(600), nullable=True)
    platform = Column(String(600), nullable=True)
    popularity_rank = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    published_services = relationship("PublishedService", back_populates="game")
