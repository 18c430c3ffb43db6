from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional, Dict, Any

from ..models.Game import Game
from ..models.PublishedService import PublishedService
from ..models.Coach import EmployeeProfile


def get_active_games(db: Session) -> List[Game]:
    return db.query(Game)\
        .filter(Game.is_active.is_(True))\
        .order_by(Game.popularity_rank.is_(None), Game.popularity_rank.asc(), Game.id.asc())\
        .all()

def get_game_by_id(db: Session, game_id: int, active_only: bool = True) -> Optional[Game]:
    query = db.query(Game).filter(Game.id == game_id)
    if active_only:
        query = query.filter(Game.is_active.is_(True))
    return query.first()

def get_game_by_slug(db: Session, slug: str) -> Optional[Game]:
    return db.query(Game).filter(Game.slug == slug).first()

def add_game(
    db: Session,
    name: str,
    slug: str,
    description: Optional[str],
    genre: Optional[str],
    platform: Optional[str],
    popularity_rank: Optional[int],
) -> Game:
    new_game = Game(
        name=name,
        slug=slug,
        description=description,
        genre=genre,
        platform=platform,
        popularity_rank=popularity_rank,
        is_active=True,
    )
    db.add(new_game)
    db.commit()
    db.refresh(new_game)
    return new_game

def update_game(db: Session, game_id: int, update_data: Dict[str, Any]) -> Optional[Game]:
    game = db.query(Game).filter(Game.id == game_id).first()
    if game:
        for key, value in update_data.items():
            if hasattr(game, key):
                setattr(game, key, value)
        db.commit()
        db.refresh(game)
    return game

def soft_delete_game(db: Session, game_id: int) -> Optional[Game]:
    """Deactivates the game together with every listing published for it."""
    game = db.query(Game).filter(Game.id == game_id).first()
    if game is None:
        return None
    game.is_active = False
    db.query(PublishedService)\
        .filter(PublishedService.game_id == game_id)\
        .update({PublishedService.is_active: False}, synchronize_session=False)
    db.commit()
    db.refresh(game)
    return game

def get_game_stats(db: Session, game_id: int) -> Dict[str, Any]:
    total_services, total_coaches = db.query(
        func.count(PublishedService.id),
        func.count(func.distinct(PublishedService.employee_id)),
    ).filter(PublishedService.game_id == game_id, PublishedService.is_active.is_(True)).one()

    avg_rating = db.query(func.avg(EmployeeProfile.rating))\
        .filter(EmployeeProfile.user_id.in_(
            db.query(PublishedService.employee_id).filter(
                PublishedService.game_id == game_id,
                PublishedService.is_active.is_(True),
            )
        )).scalar()

    return {
        "total_services": total_services,
        "total_coaches": total_coaches,
        "avg_coach_rating": float(avg_rating) if avg_rating is not None else None,
    }
