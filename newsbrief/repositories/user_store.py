"""
User stores holding the usage fields of each account.

Both backends expose the same quota operations; one of them is chosen at
startup and injected into the usage gate.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from sqlalchemy.orm import sessionmaker

from ..exceptions import UserNotFoundError
from ..models.user import User

logger = structlog.get_logger(__name__)

REASON_PREMIUM = "premium"
REASON_FREE_QUOTA = "free_quota"
REASON_LIMIT_REACHED = "daily_limit_reached"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class UserRecord:
    user_id: str
    email: str = ""
    is_premium: bool = False
    daily_count: int = 0
    last_usage_date: Optional[datetime] = None

    def __post_init__(self):
        if self.last_usage_date is None:
            self.last_usage_date = utc_now()


@dataclass(frozen=True)
class UsageCheck:
    allowed: bool
    reason: str
    daily_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"allowed": self.allowed, "reason": self.reason}
        if self.daily_count is not None:
            data["dailyCount"] = self.daily_count
        return data


class UserStore(ABC):
    name = "abstract"

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def save_user(self, record: UserRecord) -> UserRecord:
        """Insert or update a record."""

    def get_or_create_user(self, user_id: str, email: str = "", is_premium: bool = False) -> UserRecord:
        record = self.get_user(user_id)
        if record is not None:
            return record
        logger.info("user_created", user_id=user_id, store=self.name)
        return self.save_user(UserRecord(user_id=user_id, email=email, is_premium=is_premium))

    def _require_user(self, user_id: str) -> UserRecord:
        record = self.get_user(user_id)
        if record is None:
            raise UserNotFoundError(user_id)
        return record

    def roll_over(self, user_id: str, now: Optional[datetime] = None) -> UserRecord:
        """Reset the count when the last usage was on an earlier calendar day."""
        now = as_utc(now or utc_now())
        record = self._require_user(user_id)
        if as_utc(record.last_usage_date).date() != now.date():
            record = self.save_user(replace(record, daily_count=0, last_usage_date=now))
            logger.info("daily_usage_reset", user_id=user_id)
        return record

    def can_fetch_news(self, user_id: str, daily_limit: int = 1, now: Optional[datetime] = None) -> UsageCheck:
        record = self.roll_over(user_id, now)

        if record.is_premium:
            return UsageCheck(allowed=True, reason=REASON_PREMIUM)
        if record.daily_count >= daily_limit:
            return UsageCheck(allowed=False, reason=REASON_LIMIT_REACHED, daily_count=record.daily_count)
        return UsageCheck(allowed=True, reason=REASON_FREE_QUOTA, daily_count=record.daily_count)

    def increment_usage(self, user_id: str, now: Optional[datetime] = None) -> UserRecord:
        record = self._require_user(user_id)
        return self.save_user(replace(
            record,
            daily_count=record.daily_count + 1,
            last_usage_date=as_utc(now or utc_now()),
        ))


class InMemoryUserStore(UserStore):
    """Process-local store for development and for running without a database."""

    name = "memory"

    def __init__(self):
        self._users: Dict[str, UserRecord] = {}

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        record = self._users.get(user_id)
        return replace(record) if record is not None else None

    def save_user(self, record: UserRecord) -> UserRecord:
        self._users[record.user_id] = replace(record)
        return replace(record)


class SqlUserStore(UserStore):
    name = "database"

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_record(user: User) -> UserRecord:
        return UserRecord(
            user_id=user.user_id,
            email=user.email or "",
            is_premium=bool(user.is_premium),
            daily_count=user.daily_usage_count or 0,
            last_usage_date=user.last_usage_date,
        )

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.session_factory() as session:
            user = session.get(User, user_id)
            return self._to_record(user) if user is not None else None

    def save_user(self, record: UserRecord) -> UserRecord:
        with self.session_factory() as session:
            user = session.get(User, record.user_id)
            if user is None:
                user = User(user_id=record.user_id)
                session.add(user)
            user.email = record.email
            user.is_premium = record.is_premium
            user.daily_usage_count = record.daily_count
            user.last_usage_date = as_utc(record.last_usage_date)
            session.commit()
            session.refresh(user)
            return self._to_record(user)
