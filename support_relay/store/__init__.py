from .session_store import SessionStore
from .memory_session_store import MemorySessionStore
from .guarded_session_store import GuardedSessionStore, guard_store


def __getattr__(name):
    """Lazy imports for optional dependencies."""
    if name == "MongoDBSessionStore":
        from .mongodb_session_store import MongoDBSessionStore
        return MongoDBSessionStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'SessionStore',
    'MemorySessionStore',
    'GuardedSessionStore',
    'guard_store',
    'MongoDBSessionStore',
]
