from .session_store import (
    ANALYTICS_KEY,
    MESSAGES_KEY,
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
)

__all__ = [
    "ANALYTICS_KEY",
    "MESSAGES_KEY",
    "InMemorySessionStore",
    "RedisSessionStore",
    "SessionStore",
]
