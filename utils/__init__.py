"""Time and request-context helpers used across the auth backend."""

from utils.timezone import now_utc, to_utc, seconds_until
from utils.user_context import (
    get_current_user_id,
    set_current_user_id,
    clear_current_user_id,
    user_context,
)
