from sqlalchemy.orm import Session
from typing import List, Optional, Tuple

from ..models.AdminLog import AdminLog
from ..models.Admin import Admin
from common.security.validation import sanitize_input


def add_admin_log(
    db: Session,
    admin_id: int,
    action: str,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    details: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> AdminLog:
    log = AdminLog(
        admin_id=admin_id,
        action=sanitize_input(action),
        target_type=sanitize_input(target_type) if target_type else None,
        target_id=target_id,
        details=sanitize_input(details) if details else None,
        ip_address=ip_address,
    )
    db.add(log)
    db.commit()
    return log

def _filter_by_target(query, target_type: Optional[str], target_id: Optional[int]):
    if target_type:
        query = query.filter(AdminLog.target_type == target_type)
    if target_id is not None:
        query = query.filter(AdminLog.target_id == target_id)
    return query

def get_admin_logs(
    db: Session,
    limit: int = 50,
    offset: int = 0,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
) -> List[Tuple[AdminLog, Optional[str], Optional[str]]]:
    query = db.query(AdminLog, Admin.full_name, Admin.email)\
        .outerjoin(Admin, AdminLog.admin_id == Admin.id)
    return _filter_by_target(query, target_type, target_id)\
        .order_by(AdminLog.created_at.desc(), AdminLog.id.desc())\
        .limit(limit)\
        .offset(offset)\
        .all()

def count_admin_logs(db: Session, target_type: Optional[str] = None, target_id: Optional[int] = None) -> int:
    return _filter_by_target(db.query(AdminLog), target_type, target_id).count()
