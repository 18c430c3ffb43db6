from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import NotFoundError, ForbiddenError
from common.pydantic.marketplace import SpecializationPayload
from common.pydantic.views import coach_view, specialization_view, service_view
from common.security.dependencies import get_current_identity
from common.security.tokens import Identity
from common.security.validation import clean_text, validate_price
from ..repositories import coach_repository, game_repository, published_service_repository

router = APIRouter()


@router.get("/coaches")
async def list_coaches(
    game_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    coaches = coach_repository.get_coaches(db, game_id=game_id, limit=limit, offset=(page - 1) * limit)
    return {"coaches": [coach_view(coach) for coach in coaches], "page": page, "limit": limit}

@router.get("/coaches/{coach_id}")
async def get_coach(coach_id: int, db: Session = Depends(get_db)):
    coach = coach_repository.get_coach(db, coach_id)
    if coach is None or coach.account_status != "active":
        raise NotFoundError("Coach not found")

    coach_data = coach_view(coach)
    coach_data["specializations"] = [
        specialization_view(item) for item in coach_repository.get_specializations(db, coach.id)
    ]
    coach_data["services"] = [
        service_view(service)
        for service in published_service_repository.get_services(db, employee_id=coach.id, limit=100)
    ]
    return {"coach": coach_data}

@router.post("/coaches/{coach_id}/specializations", status_code=201)
async def upsert_specialization(
    coach_id: int,
    payload: SpecializationPayload,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    if not identity.is_admin and identity.id != coach_id:
        raise ForbiddenError("Unauthorized")
    if coach_repository.get_coach(db, coach_id) is None:
        raise NotFoundError("Coach not found")
    if game_repository.get_game_by_id(db, payload.game_id) is None:
        raise NotFoundError("Game not found")

    specialization = coach_repository.upsert_specialization(
        db,
        employee_id=coach_id,
        game_id=payload.game_id,
        rank_in_game=clean_text(payload.rank_in_game, "Rank", required=False),
        years_in_game=payload.years_in_game,
        hourly_rate=validate_price(payload.hourly_rate, "Hourly rate") if payload.hourly_rate is not None else None,
        is_primary=payload.is_primary,
    )
    return {"message": "Specialization saved", "specialization": specialization_view(specialization)}
