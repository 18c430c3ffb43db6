from collections import defaultdict, OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List

from sqlalchemy.orm import Session
from sqlalchemy import func

from user_service.app.backend.models.User import User
from ..models.Game import Game
from ..models.PublishedService import PublishedService
from ..models.ServiceApplication import ServiceApplication
from ..models.ServiceRequest import ServiceRequest
from ..models.Transaction import Transaction

ANALYTICS_RANGES = (7, 30, 365)


def range_start(days: int) -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=days)

def _day(moment: datetime) -> str:
    return moment.date().isoformat()

def _week(moment: datetime) -> str:
    year, week, _ = moment.isocalendar()
    return f"{year}-W{week:02d}"

def daily_requests(db: Session, since: datetime) -> List[Dict[str, Any]]:
    counts = OrderedDict()
    rows = db.query(ServiceRequest.created_at)\
        .filter(ServiceRequest.created_at >= since)\
        .order_by(ServiceRequest.created_at)\
        .all()
    for (created_at,) in rows:
        counts[_day(created_at)] = counts.get(_day(created_at), 0) + 1
    return [{"date": day, "count": count} for day, count in counts.items()]

def daily_revenue(db: Session, since: datetime) -> List[Dict[str, Any]]:
    totals = OrderedDict()
    rows = db.query(Transaction.completed_at, Transaction.amount, Transaction.commission_amount)\
        .filter(Transaction.completed_at >= since, Transaction.status == "completed")\
        .order_by(Transaction.completed_at)\
        .all()
    for completed_at, amount, commission in rows:
        bucket = totals.setdefault(_day(completed_at), {"revenue": 0.0, "commission": 0.0, "transactions": 0})
        bucket["revenue"] += float(amount)
        bucket["commission"] += float(commission)
        bucket["transactions"] += 1
    return [
        {"date": day, "revenue": round(values["revenue"], 2), "commission": round(values["commission"], 2), "transactions": values["transactions"]}
        for day, values in totals.items()
    ]

def daily_new_users(db: Session, since: datetime) -> List[Dict[str, Any]]:
    counts = OrderedDict()
    rows = db.query(User.created_at).filter(User.created_at >= since).order_by(User.created_at).all()
    for (created_at,) in rows:
        counts[_day(created_at)] = counts.get(_day(created_at), 0) + 1
    return [{"date": day, "count": count} for day, count in counts.items()]

def weekly_applications(db: Session, since: datetime) -> List[Dict[str, Any]]:
    weeks = defaultdict(lambda: {"approved": 0, "rejected": 0, "pending": 0})
    rows = db.query(ServiceApplication.submitted_at, ServiceApplication.status)\
        .filter(ServiceApplication.submitted_at >= since)\
        .all()
    for submitted_at, status in rows:
        weeks[_week(submitted_at)][status] += 1
    return [{"week": week, **weeks[week]} for week in sorted(weeks)]

def status_distribution(db: Session) -> Dict[str, int]:
    rows = db.query(ServiceRequest.status, func.count(ServiceRequest.id)).group_by(ServiceRequest.status).all()
    return {status: count for status, count in rows}

def top_games(db: Session, since: datetime, limit: int = 5) -> List[Dict[str, Any]]:
    rows = db.query(Game.id, Game.name, func.count(ServiceRequest.id).label("request_count"))\
        .join(PublishedService, PublishedService.game_id == Game.id)\
        .join(ServiceRequest, ServiceRequest.published_service_id == PublishedService.id)\
        .filter(ServiceRequest.created_at >= since)\
        .group_by(Game.id, Game.name)\
        .order_by(func.count(ServiceRequest.id).desc(), Game.id)\
        .limit(limit)\
        .all()
    return [{"game_id": game_id, "name": name, "request_count": count} for game_id, name, count in rows]

def build_report(db: Session, days: int) -> Dict[str, Any]:
    since = range_start(days)
    return {
        "range_days": days,
        "daily_requests": daily_requests(db, since),
        "daily_revenue": daily_revenue(db, since),
        "daily_new_users": daily_new_users(db, since),
        "weekly_applications": weekly_applications(db, since),
        "status_distribution": status_distribution(db),
        "top_games": top_games(db, since),
    }
