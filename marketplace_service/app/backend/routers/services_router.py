from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import NotFoundError
from common.pydantic.views import service_view
from ..repositories import published_service_repository

router = APIRouter()


@router.get("/services")
async def list_services(
    game_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    services = published_service_repository.get_services(
        db, game_id=game_id, employee_id=employee_id, limit=limit, offset=(page - 1) * limit,
    )
    return {"services": [service_view(service) for service in services], "page": page, "limit": limit}

@router.get("/services/{service_id}")
async def get_service(service_id: int, db: Session = Depends(get_db)):
    service = published_service_repository.get_service_by_id(db, service_id)
    if service is None:
        raise NotFoundError("Service not found")
    return {"service": service_view(service)}
