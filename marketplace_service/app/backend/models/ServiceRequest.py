from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from common.db.database import Base


class ServiceRequest(Base):
    __tablename__ = "service_requests"
    id = Column(Integer, primary_key=True, index=True)
    published_service_id = Column(Integer, ForeignKey("published_services.id"), nullable=False)
    requester_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    employee_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Copied from the service price at creation; later price edits do not touch open requests
    amount = Column(Numeric(10, 2), nullable=False)
    service_details = Column(Text, nullable=False)
    employee_response = Column(Text, nullable=True)
    status = Column(String(30), nullable=False, default="pending", index=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    accepted_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    published_service = relationship("PublishedService")
    requester = relationship("User", foreign_keys=[requester_user_id])
    employee = relationship("User", foreign_keys=[employee_user_id])
    chat = relationship("Chat", back_populates="service_request", uselist=False)
    completions = relationship(
        "ServiceCompletion",
        back_populates="service_request",
        order_by="ServiceCompletion.id",
    )

    __mapper_args__ = {"version_id_col": version}


class ServiceCompletion(Base):
    __tablename__ = "service_completions"
    id = Column(Integer, primary_key=True, index=True)
    service_request_id = Column(Integer, ForeignKey("service_requests.id"), nullable=False, index=True)
    employee_completion_notes = Column(Text, nullable=True)
    admin_review_notes = Column(Text, nullable=True)
    reviewed_by_admin = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="pending_review", index=True)

    submitted_at = Column(DateTime, nullable=False, server_default=func.now())
    reviewed_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)

    service_request = relationship("ServiceRequest", back_populates="completions")
