from fastapi import APIRouter, Request, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import NotFoundError, ConflictError, ValidationError
from common.pydantic.marketplace import GameCreatePayload, GameUpdatePayload
from common.pydantic.views import game_view
from common.security.dependencies import require_admin
from common.security.tokens import Identity
from common.security.validation import clean_text
from user_service.app.backend.services.audit import audited, record_audit, CREATE_GAME, UPDATE_GAME, DELETE_GAME
from ..repositories import game_repository

router = APIRouter()


@router.get("/games")
async def list_games(db: Session = Depends(get_db)):
    return {"games": [game_view(game) for game in game_repository.get_active_games(db)]}

@router.get("/games/{game_id}")
async def get_game(game_id: int, db: Session = Depends(get_db)):
    game = game_repository.get_game_by_id(db, game_id)
    if game is None:
        raise NotFoundError("Game not found")
    return {"game": game_view(game)}

@router.get("/games/{game_id}/stats")
async def get_game_stats(game_id: int, db: Session = Depends(get_db)):
    game = game_repository.get_game_by_id(db, game_id)
    if game is None:
        raise NotFoundError("Game not found")
    return {"game_id": game.id, "stats": game_repository.get_game_stats(db, game.id)}

@router.post("/games", status_code=201)
@audited(CREATE_GAME, "game")
async def create_game(
    request: Request,
    payload: GameCreatePayload,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    name = clean_text(payload.name, "Name")
    slug = clean_text(payload.slug, "Slug").lower()
    if game_repository.get_game_by_slug(db, slug):
        raise ConflictError("Game with this slug already exists")

    try:
        game = game_repository.add_game(
            db,
            name=name,
            slug=slug,
            description=clean_text(payload.description, "Description", required=False),
            genre=clean_text(payload.genre, "Genre", required=False),
            platform=clean_text(payload.platform, "Platform", required=False),
            popularity_rank=payload.popularity_rank,
        )
    except IntegrityError:
        db.rollback()
        raise ConflictError("Game with this slug already exists")

    record_audit(request, details=f"Created game {game.name}", target_id=game.id)
    return {"message": "Game created successfully", "game": game_view(game)}

@router.put("/games/{game_id}")
@audited(UPDATE_GAME, "game", target_param="game_id")
async def update_game(
    request: Request,
    game_id: int,
    payload: GameUpdatePayload,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    update_data = payload.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No data provided for update")

    for field in ("description", "genre", "platform"):
        if field in update_data:
            update_data[field] = clean_text(update_data[field], field.capitalize(), required=False)
    if "name" in update_data:
        update_data["name"] = clean_text(update_data["name"], "Name")

    game = game_repository.update_game(db, game_id, update_data)
    if game is None:
        raise NotFoundError("Game not found")
    record_audit(request, details=f"Updated fields: {', '.join(sorted(update_data))}")
    return {"message": "Game updated successfully", "game": game_view(game)}

@router.delete("/games/{game_id}")
@audited(DELETE_GAME, "game", target_param="game_id")
async def delete_game(
    request: Request,
    game_id: int,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    game = game_repository.soft_delete_game(db, game_id)
    if game is None:
        raise NotFoundError("Game not found")
    record_audit(request, details=f"Deactivated game {game.name}")
    return {"message": "Game deleted successfully"}
