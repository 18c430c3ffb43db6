from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Dict, Optional, Any

from ..models.Admin import Admin
from common.config.settings import MAX_LOGIN_ATTEMPTS
from common.security.passwords import hash_password


def get_all_admins(db: Session) -> List[Admin]:
    return db.query(Admin).order_by(Admin.created_at.desc(), Admin.id.desc()).all()

def get_admin_by_id(db: Session, admin_id: int) -> Optional[Admin]:
    return db.query(Admin).filter(Admin.id == admin_id).first()

def get_admin_by_email(db: Session, email: str) -> Optional[Admin]:
    return db.query(Admin).filter(Admin.email == email).first()

def get_blocked_admins(db: Session) -> List[Admin]:
    return db.query(Admin).filter(Admin.is_active.is_(False)).order_by(Admin.created_at.desc()).all()

def create_admin(
    db: Session,
    email: str,
    full_name: str,
    role: str = "regular",
    password: Optional[str] = None,
    password_hash: Optional[str] = None,
) -> Admin:
    # Promoted users keep their existing hash so they log in with the same password
    admin = Admin(
        email=email,
        full_name=full_name,
        role=role,
        password_hash=password_hash or hash_password(password),
        is_active=True,
        failed_login_attempts=0,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin

def record_failed_login(db: Session, admin: Admin) -> int:
    db.query(Admin).filter(Admin.id == admin.id).update(
        {Admin.failed_login_attempts: Admin.failed_login_attempts + 1},
        synchronize_session=False,
    )
    db.flush()
    db.refresh(admin)

    if admin.failed_login_attempts >= MAX_LOGIN_ATTEMPTS:
        admin.is_active = False
    db.commit()
    return max(MAX_LOGIN_ATTEMPTS - admin.failed_login_attempts, 0)

def record_successful_login(db: Session, admin: Admin) -> Admin:
    admin.failed_login_attempts = 0
    admin.last_login = func.now()
    db.commit()
    db.refresh(admin)
    return admin

def update_admin(db: Session, admin_id: int, update_data: Dict[str, Any]) -> Optional[Admin]:
    admin = get_admin_by_id(db, admin_id)
    if admin:
        for key, value in update_data.items():
            if hasattr(admin, key):
                setattr(admin, key, value)
        if update_data.get("is_active"):
            admin.failed_login_attempts = 0
        db.commit()
        db.refresh(admin)
    return admin

def unblock_admin(db: Session, admin_id: int) -> Optional[Admin]:
    return update_admin(db, admin_id, {"is_active": True})

def delete_admin_by_id(db: Session, admin_id: int) -> int:
    deleted_count = db.query(Admin).filter(Admin.id == admin_id).delete(synchronize_session=False)
    db.commit()
    return deleted_count
