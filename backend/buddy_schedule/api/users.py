from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from buddy_schedule.database import get_db
from buddy_schedule.models import User
from buddy_schedule.schemas.user import User as UserSchema
from buddy_schedule.services.user_service import UserService
from buddy_schedule.auth.dependencies import get_current_user

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/me", response_model=UserSchema)
def get_me(current_user: User = Depends(get_current_user)):
    """Current user"""
    return current_user


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete an account (own account, or any account for a superadmin)"""
    UserService(db).delete_user(current_user, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
