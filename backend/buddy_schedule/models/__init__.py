from .user import User
from .bootstrap import BootstrapClaim, BOOTSTRAP_CLAIM_ID
from .schedule import Schedule
from .schedule_member import ScheduleMember, MemberRole
from .rotation_template import RotationTemplate
from .shift import Shift, Period
from .shift_comment import ShiftComment

__all__ = [
    "User",
    "BootstrapClaim",
    "BOOTSTRAP_CLAIM_ID",
    "Schedule",
    "ScheduleMember",
    "MemberRole",
    "RotationTemplate",
    "Shift",
    "Period",
    "ShiftComment",
]
