from estateops.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from estateops.database.engine import async_session, engine
from estateops.database.session import session_scope

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "async_session",
    "engine",
    "session_scope",
]
