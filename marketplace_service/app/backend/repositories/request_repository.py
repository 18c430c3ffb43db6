from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from typing import List, Optional
from decimal import Decimal

from ..models.ServiceRequest import ServiceRequest, ServiceCompletion
from ..models.PublishedService import PublishedService
from ..models.Transaction import Transaction


def add_request(db: Session, service: PublishedService, requester_user_id: int, service_details: str) -> ServiceRequest:
    new_request = ServiceRequest(
        published_service_id=service.id,
        requester_user_id=requester_user_id,
        employee_user_id=service.employee_id,
        service_details=service_details,
        amount=service.price,
        status="pending",
    )
    db.add(new_request)
    db.commit()
    db.refresh(new_request)
    return new_request

def get_request_by_id(db: Session, request_id: int) -> Optional[ServiceRequest]:
    return db.query(ServiceRequest)\
        .options(joinedload(ServiceRequest.published_service))\
        .filter(ServiceRequest.id == request_id)\
        .first()

def get_request_for_update(db: Session, request_id: int) -> Optional[ServiceRequest]:
    # Row lock where the dialect has one; the version column catches the rest
    return db.query(ServiceRequest)\
        .filter(ServiceRequest.id == request_id)\
        .populate_existing()\
        .with_for_update()\
        .first()

def get_requests_for_employee(db: Session, employee_id: int) -> List[ServiceRequest]:
    return db.query(ServiceRequest)\
        .options(joinedload(ServiceRequest.published_service), joinedload(ServiceRequest.requester))\
        .filter(ServiceRequest.employee_user_id == employee_id)\
        .order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())\
        .all()

def get_requests_for_requester(db: Session, requester_id: int) -> List[ServiceRequest]:
    return db.query(ServiceRequest)\
        .options(joinedload(ServiceRequest.published_service), joinedload(ServiceRequest.employee))\
        .filter(ServiceRequest.requester_user_id == requester_id)\
        .order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())\
        .all()

def get_all_requests(db: Session, status: Optional[str] = None) -> List[ServiceRequest]:
    query = db.query(ServiceRequest).options(
        joinedload(ServiceRequest.published_service),
        joinedload(ServiceRequest.requester),
        joinedload(ServiceRequest.employee),
    )
    if status:
        query = query.filter(ServiceRequest.status == status)
    return query.order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc()).all()

def count_requests_by_statuses(db: Session, statuses) -> int:
    return db.query(ServiceRequest).filter(ServiceRequest.status.in_(statuses)).count()
# --- completions ---

def add_completion(db: Session, request_id: int, notes: Optional[str]) -> ServiceCompletion:
    completion = ServiceCompletion(
        service_request_id=request_id,
        employee_completion_notes=notes,
        status="pending_review",
    )
    db.add(completion)
    db.flush()
    return completion

def get_completion_for_update(db: Session, completion_id: int) -> Optional[ServiceCompletion]:
    return db.query(ServiceCompletion)\
        .filter(ServiceCompletion.id == completion_id)\
        .populate_existing()\
        .with_for_update()\
        .first()

def get_pending_completions(db: Session) -> List[ServiceCompletion]:
    return db.query(ServiceCompletion)\
        .options(
            joinedload(ServiceCompletion.service_request).joinedload(ServiceRequest.published_service),
            joinedload(ServiceCompletion.service_request).joinedload(ServiceRequest.chat),
        )\
        .filter(ServiceCompletion.status == "pending_review")\
        .order_by(ServiceCompletion.submitted_at.asc(), ServiceCompletion.id.asc())\
        .all()

def count_pending_completions(db: Session) -> int:
    return db.query(ServiceCompletion).filter(ServiceCompletion.status == "pending_review").count()

# --- transactions ---

def add_transaction(
    db: Session,
    service_request: ServiceRequest,
    amount: Decimal,
    commission_amount: Decimal,
) -> Transaction:
    transaction = Transaction(
        service_request_id=service_request.id,
        from_user_id=service_request.requester_user_id,
        to_user_id=service_request.employee_user_id,
        amount=amount,
        commission_amount=commission_amount,
        transaction_type="service_payment",
        status="completed",
    )
    db.add(transaction)
    db.flush()
    return transaction
def get_revenue_totals(db: Session):
    return db.query(
        func.coalesce(func.sum(Transaction.amount), 0),
        func.coalesce(func.sum(Transaction.commission_amount), 0),
    ).filter(Transaction.status == "completed").one()
