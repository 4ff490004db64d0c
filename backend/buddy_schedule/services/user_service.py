from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional
from buddy_schedule.auth.security import hash_password, verify_password
from buddy_schedule.config import settings
from buddy_schedule.errors import (
    AuthenticationError, AuthorizationError, ConcurrencyError, ConflictError, NotFoundError, ValidationError,
)
from buddy_schedule.models import User, BootstrapClaim, BOOTSTRAP_CLAIM_ID, Schedule, RotationTemplate, Shift
import logging

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class UserService:
    """Registration, login and account removal"""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("user not found")
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def register_user(self, email: str, password: str) -> User:
        """
        Create an account; the first account ever created becomes superadmin

        The superadmin decision and the user insert commit in one transaction
        together with the single bootstrap row. Of two racing first
        registrations only one can insert that row; the loser is retried
        once as a regular user.

        Args:
            email: Login email, stored trimmed and lower-cased
            password: Plain password, at least min_password_length characters

        Returns:
            The created user
        """
        email = normalize_email(email)
        if not email:
            raise ValidationError("email is required")
        if password is None or len(password) < settings.min_password_length:
            raise ValidationError(f"password must be at least {settings.min_password_length} characters")

        if self.find_by_email(email):
            raise ConflictError("email already registered")

        password_hash = hash_password(password)

        try:
            return self._insert_user(email, password_hash, claim_bootstrap=True)
        except IntegrityError:
            self.db.rollback()
            if self.find_by_email(email):
                raise ConflictError("email already registered")
            logger.warning(f"Superadmin bootstrap already claimed concurrently, registering {email} as regular user")

        try:
            return self._insert_user(email, password_hash, claim_bootstrap=False)
        except IntegrityError:
            self.db.rollback()
            if self.find_by_email(email):
                raise ConflictError("email already registered")
            raise ConcurrencyError("registration could not be completed, try again")

    def _insert_user(self, email: str, password_hash: str, claim_bootstrap: bool) -> User:
        is_first = (
            claim_bootstrap
            and self.db.query(BootstrapClaim).filter(BootstrapClaim.id == BOOTSTRAP_CLAIM_ID).first() is None
            and self.db.query(User.id).first() is None
        )

        user = User(email=email, password_hash=password_hash, is_superadmin=is_first)
        self.db.add(user)
        self.db.flush()  # user.id for the claim row

        if is_first:
            self.db.add(BootstrapClaim(id=BOOTSTRAP_CLAIM_ID, user_id=user.id))
            self.db.flush()

        self.db.commit()
        self.db.refresh(user)

        if is_first:
            logger.info(f"First user {email} registered as superadmin")
        else:
            logger.info(f"User {email} registered")
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Return the user matching the credentials"""
        user = self.find_by_email(email)
        if not user or not verify_password(password or "", user.password_hash):
            logger.warning(f"Failed login attempt: {normalize_email(email)}")
            raise AuthenticationError("invalid email or password")
        return user

    def delete_user(self, identity: User, user_id: int) -> None:
        """
        Delete an account (self-service or superadmin)

        Memberships and comments of the user are removed, shifts assigned to
        the user become unassigned. Users still recorded as creator of a
        schedule, template or shift cannot be removed.
        """
        if identity.id != user_id and not identity.is_superadmin:
            raise AuthorizationError("not allowed to delete this user")

        user = self.get_user(user_id)

        for model in (Schedule, RotationTemplate, Shift):
            if self.db.query(model.id).filter(model.created_by == user_id).first():
                raise ConflictError("user still owns schedules, templates or shifts")

        self.db.delete(user)
        self.db.commit()
        logger.info(f"Deleted user {user_id}")
