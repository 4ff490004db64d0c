from buddy_schedule.auth.dependencies import get_current_user
from buddy_schedule.auth.security import hash_password, verify_password, create_access_token

__all__ = ["get_current_user", "hash_password", "verify_password", "create_access_token"]
