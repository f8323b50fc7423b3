from .client_registry import ClientEntry, ClientRegistry, validate_session_id

__all__ = ["ClientEntry", "ClientRegistry", "validate_session_id"]
