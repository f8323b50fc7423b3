from .session_lifecycle import SessionLifecycle

__all__ = ["SessionLifecycle"]
