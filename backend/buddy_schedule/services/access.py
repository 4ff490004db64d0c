from sqlalchemy.orm import Session
from typing import Callable, Optional
from buddy_schedule.errors import AuthorizationError
from buddy_schedule.models import ScheduleMember, MemberRole, User
import enum
import logging

logger = logging.getLogger(__name__)


class EffectiveRole(enum.IntEnum):
    """Resolved permission level of a user on one schedule, totally ordered"""
    NONE = 0
    MEMBER = 1
    ADMIN = 2
    SUPERADMIN = 3


_MEMBER_ROLE_MAP = {
    MemberRole.ADMIN: EffectiveRole.ADMIN,
    MemberRole.USER: EffectiveRole.MEMBER,
}


def resolve_role(db: Session, identity: User, schedule_id: int, lock: bool = False) -> EffectiveRole:
    """
    Resolve the caller's effective role on a schedule

    Args:
        db: Session of the current operation; mutations must reuse it
        identity: Calling user
        schedule_id: Schedule ID
        lock: Read the membership row FOR UPDATE so a concurrent role change
            cannot commit between this check and the caller's write

    Returns:
        SUPERADMIN for superadmins, otherwise the mapped membership role or NONE
    """
    if identity.is_superadmin:
        return EffectiveRole.SUPERADMIN

    query = db.query(ScheduleMember).filter(
        ScheduleMember.schedule_id == schedule_id,
        ScheduleMember.user_id == identity.id
    )
    if lock:
        query = query.with_for_update()
    membership = query.first()

    if membership is None:
        return EffectiveRole.NONE
    return _MEMBER_ROLE_MAP[membership.role]


def can_manage_schedule(role: EffectiveRole) -> bool:
    return role >= EffectiveRole.ADMIN


def can_comment(role: EffectiveRole) -> bool:
    return role >= EffectiveRole.MEMBER


def can_view(role: EffectiveRole) -> bool:
    return role >= EffectiveRole.MEMBER


def require(role: EffectiveRole, predicate: Callable[[EffectiveRole], bool], action: Optional[str] = None) -> EffectiveRole:
    """Raise AuthorizationError unless predicate(role) holds"""
    if not predicate(role):
        logger.info(f"Denied {action or predicate.__name__} for role {role.name}")
        raise AuthorizationError(f"not allowed to {action}" if action else "forbidden")
    return role
