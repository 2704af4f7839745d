from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.core.db import get_db
from app.core.logger import get_logger
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse, UserUpdate, UserRoleEnum
from app.services.notifier import Notifier, build_notifier, send_welcome_email

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

def get_notifier() -> Notifier:
    return build_notifier()

@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_in: UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Register a directory entry. Moderators and admins become eligible for ticket assignment.
    """
    if db.query(User).filter(User.email == user_in.email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    try:
        user = User(email=user_in.email, role=user_in.role.value, skills=list(user_in.skills))
        db.add(user)
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        raise e

    logger.info(f"User {user.id} registered with role {user.role}")
    background_tasks.add_task(send_welcome_email, notifier, user.email)
    return user


@router.get("", response_model=List[UserResponse])
def get_users(role: Optional[UserRoleEnum] = None, db: Session = Depends(get_db)):
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role.value)
    return query.order_by(User.id).all()


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(user_id: int, update_data: UserUpdate, db: Session = Depends(get_db)):
    """
    Admin edit of a user's role and skills.
    Omitted fields, and an empty skills list, keep the current values.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    try:
        if update_data.role is not None:
            user.role = update_data.role.value
        if update_data.skills:
            user.skills = list(update_data.skills)
        db.commit()
        db.refresh(user)
        return user
    except Exception as e:
        db.rollback()
        raise e
