from __future__ import annotations

"""Per-user daily message quota."""

import logging

from ..domain.errors import ChatSDKError
from ..infrastructure.chat_store import ChatStore
from .entitlements import Entitlements


logger = logging.getLogger(__name__)

QUOTA_WINDOW_HOURS = 24


def enforce_daily_quota(store: ChatStore, user_id: str, entitlements: Entitlements) -> int:
    """Count the user's messages in the trailing window.

    Raises:
        ChatSDKError("rate_limit:chat") when the count exceeds the allowance.
        Nothing is persisted and no model is invoked before this check.
    """
    count = store.get_message_count_by_user_id(user_id, difference_in_hours=QUOTA_WINDOW_HOURS)
    if count > entitlements.max_messages_per_day:
        logger.info(
            "daily_quota_exceeded",
            extra={"user_id": user_id, "count": count, "limit": entitlements.max_messages_per_day},
        )
        raise ChatSDKError("rate_limit:chat")
    return count
