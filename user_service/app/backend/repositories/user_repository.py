from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Dict, Optional, Any

from ..models.User import User
from common.config.settings import MAX_LOGIN_ATTEMPTS
from common.security.passwords import hash_password


def get_all_users(db: Session, limit: int = 20, offset: int = 0) -> List[User]:
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).limit(limit).offset(offset).all()

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()

def get_user_by_id(db: Session, id: int) -> Optional[User]:
    return db.query(User).filter(User.id == id).first()

def get_active_user_by_id(db: Session, id: int) -> Optional[User]:
    return db.query(User).filter(User.id == id, User.account_status == "active").first()

def get_blocked_users(db: Session) -> List[User]:
    return db.query(User).filter(User.account_status == "blocked").order_by(User.created_at.desc()).all()

def create_user(db: Session, email: str, password: str, full_name: str) -> User:
    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        account_status="active",
        failed_login_attempts=0,
        is_employee=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def record_failed_login(db: Session, user: User) -> int:
    """
    Atomically bumps the failed-attempt counter and blocks the account once it
    reaches MAX_LOGIN_ATTEMPTS. Returns the number of attempts left.
    """
    db.query(User).filter(User.id == user.id).update(
        {User.failed_login_attempts: User.failed_login_attempts + 1},
        synchronize_session=False,
    )
    db.flush()
    db.refresh(user)

    if user.failed_login_attempts >= MAX_LOGIN_ATTEMPTS:
        user.account_status = "blocked"
    db.commit()
    return max(MAX_LOGIN_ATTEMPTS - user.failed_login_attempts, 0)

def record_successful_login(db: Session, user: User) -> User:
    user.failed_login_attempts = 0
    user.last_login = func.now()
    db.commit()
    db.refresh(user)
    return user

def update_user(db: Session, user_id: int, update_data: Dict[str, Any]) -> Optional[User]:
    user = db.query(User).filter(User.id == user_id).first()

    if user:
        for key, value in update_data.items():
            if hasattr(user, key):
                setattr(user, key, value)

        db.commit()
        db.refresh(user)

    return user

def set_account_status(db: Session, user_id: int, account_status: str) -> Optional[User]:
    user = get_user_by_id(db, user_id)
    if user is None:
        return None
    user.account_status = account_status
    if account_status == "active":
        user.failed_login_attempts = 0
    db.commit()
    db.refresh(user)
    return user

def unblock_user(db: Session, user_id: int) -> Optional[User]:
    return set_account_status(db, user_id, "active")

def count_users(db: Session, employees_only: bool = False) -> int:
    query = db.query(User)
    if employees_only:
        query = query.filter(User.is_employee.is_(True))
    return query.count()

def credit_wallet(db: Session, user_id: int, amount) -> int:
    """Adds amount to the wallet in one UPDATE. Does not commit."""
    updated_count = db.query(User).filter(User.id == user_id).update(
        {User.wallet_balance: User.wallet_balance + amount},
        synchronize_session=False,
    )
    db.flush()
    return updated_count

def mark_as_employee(db: Session, user: User) -> User:
    user.is_employee = True
    db.flush()
    return user
