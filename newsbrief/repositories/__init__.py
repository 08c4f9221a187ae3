from .user_store import UserStore, InMemoryUserStore, SqlUserStore, UserRecord, UsageCheck

__all__ = ["UserStore", "InMemoryUserStore", "SqlUserStore", "UserRecord", "UsageCheck"]
