from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from buddy_schedule.auth.security import verify_token
from buddy_schedule.database import get_db
from buddy_schedule.models import User

security = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Dependency resolving the bearer token to a user loaded in the request session"""
    if credentials is None:
        raise _unauthorized()

    payload = verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized()

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise _unauthorized()

    # The account may have been deleted since the token was issued
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise _unauthorized()

    return user
