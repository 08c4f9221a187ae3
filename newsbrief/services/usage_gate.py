from typing import Any, Dict

import structlog

from ..exceptions import UsageLimitExceededError
from ..repositories.user_store import UsageCheck, UserStore

logger = structlog.get_logger(__name__)

DEFAULT_DAILY_LIMIT = 1


class UsageGate:
    """
    Daily quota in front of the summarization pipeline.

    Check and increment are separate store calls, so two concurrent requests
    from one free user can both pass the check.
    """

    def __init__(self, store: UserStore, daily_limit: int = DEFAULT_DAILY_LIMIT):
        self.store = store
        self.daily_limit = daily_limit

    def can_proceed(self, user_id: str) -> UsageCheck:
        check = self.store.can_fetch_news(user_id, self.daily_limit)
        logger.info(
            "usage_checked",
            user_id=user_id,
            allowed=check.allowed,
            reason=check.reason,
            daily_count=check.daily_count,
        )
        return check

    def ensure_allowed(self, user_id: str) -> UsageCheck:
        """
        Raises:
            UsageLimitExceededError: the user has used up today's free quota
        """
        check = self.can_proceed(user_id)
        if not check.allowed:
            raise UsageLimitExceededError(daily_count=check.daily_count or 0, limit=self.daily_limit)
        return check

    def record_usage(self, user_id: str) -> None:
        record = self.store.increment_usage(user_id)
        logger.info("usage_recorded", user_id=user_id, daily_count=record.daily_count)

    def usage_snapshot(self, user_id: str) -> Dict[str, Any]:
        record = self.store.roll_over(user_id)
        remaining = None if record.is_premium else max(self.daily_limit - record.daily_count, 0)
        return {
            "userId": record.user_id,
            "dailyCount": record.daily_count,
            "limit": self.daily_limit,
            "isPremium": record.is_premium,
            "remaining": remaining,
        }
