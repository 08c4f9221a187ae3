from typing import Optional, Dict, Any


class NewsBriefError(Exception):
    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


class ExternalServiceError(NewsBriefError):
    pass


class ProviderError(ExternalServiceError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(
            message=message,
            error_code="PROVIDER_ERROR",
            details={"status_code": status_code} if status_code is not None else {}
        )
        self.status_code = status_code


class LLMServiceError(ExternalServiceError):
    pass


class UserNotFoundError(NewsBriefError):
    def __init__(self, user_id: str):
        super().__init__(
            message=f"User {user_id} not found",
            error_code="USER_NOT_FOUND",
            details={"user_id": user_id}
        )


class UsageLimitExceededError(NewsBriefError):
    def __init__(self, daily_count: int, limit: int):
        super().__init__(
            message=f"You've reached your daily limit of {limit} summary. Upgrade to Premium for unlimited access.",
            error_code="DAILY_LIMIT_REACHED",
            details={"dailyCount": daily_count, "limit": limit}
        )
        self.daily_count = daily_count
        self.limit = limit
