from sqlalchemy import or_
from sqlalchemy.orm import Session

import auth
import db_models
import schemas

# Users
def create_user(db: Session, user: schemas.UserCreate):
    hashed_pw = auth.hash_password(user.password)
    db_user = db_models.User(
        username=user.username.strip(),
        email=user.email.strip().lower(),
        password_hash=hashed_pw,
        first_name=user.first_name,
        last_name=user.last_name,
    )
    db.add(db_user)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_user)
    return db_user

def get_user_by_id(db: Session, user_id: int):
    return db.query(db_models.User).filter(db_models.User.id == user_id).first()

def get_user_by_identifier(db: Session, identifier: str):
    """Look a user up by username or email."""
    identifier = identifier.strip()
    return db.query(db_models.User).filter(
        or_(db_models.User.username == identifier, db_models.User.email == identifier.lower())
    ).first()

def authenticate_user(db: Session, identifier: str, password: str):
    user = get_user_by_identifier(db, identifier)
    if not user or not auth.verify_password(password, user.password_hash):
        return None
    return user

def touch_last_login(db: Session, user: db_models.User):
    user.last_login = db_models.utcnow()
    db.commit()
    db.refresh(user)
    return user

def touch_last_logout(db: Session, user_id: int):
    user = get_user_by_id(db, user_id)
    if not user:
        return None
    user.last_logout = db_models.utcnow()
    db.commit()
    return user
