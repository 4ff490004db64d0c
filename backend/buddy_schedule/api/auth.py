from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from buddy_schedule.database import get_db
from buddy_schedule.schemas.auth import CredentialsRequest, TokenResponse
from buddy_schedule.services.user_service import UserService
from buddy_schedule.auth.security import create_access_token
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse)
def register(data: CredentialsRequest, db: Session = Depends(get_db)):
    """Register an account; the very first account becomes superadmin"""
    user = UserService(db).register_user(data.email, data.password)
    access_token = create_access_token(data={"sub": str(user.id), "is_superadmin": user.is_superadmin})
    return TokenResponse(access_token=access_token)


@router.post("/login", response_model=TokenResponse)
def login(data: CredentialsRequest, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token"""
    user = UserService(db).authenticate(data.email, data.password)
    access_token = create_access_token(data={"sub": str(user.id), "is_superadmin": user.is_superadmin})
    logger.info(f"Successful login: {user.email}")
    return TokenResponse(access_token=access_token)
