import os
from dataclasses import dataclass, field
from typing import Optional


def _split_origins(raw: Optional[str]) -> list[str]:
    if not raw:
        return ["*"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass
class RelayConfig:
    """Runtime configuration of the relay server."""
    mongo_uri: Optional[str] = None
    """MongoDB connection string. Required when ``store`` is "mongodb"."""
    mongo_db: str = "speicher"
    sessions_collection: str = "chatSessions"
    messages_collection: str = "chatMessages"
    max_pool_size: int = 10
    server_selection_timeout_ms: int = 5000
    socket_timeout_ms: int = 45000
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    """CORS origins; ``["*"]`` allows any origin."""
    host: str = "0.0.0.0"
    port: int = 3001
    store: str = "mongodb"
    """Store backend, "mongodb" or "memory"."""

    @classmethod
    def from_env(cls) -> "RelayConfig":
        """Build the configuration from environment variables."""
        env = os.environ
        return cls(
            mongo_uri=env.get("MONGODB_URI"),
            mongo_db=env.get("MONGODB_DB", "speicher"),
            sessions_collection=env.get("SESSIONS_COLLECTION", "chatSessions"),
            messages_collection=env.get("MESSAGES_COLLECTION", "chatMessages"),
            max_pool_size=int(env.get("MONGODB_MAX_POOL_SIZE", "10")),
            server_selection_timeout_ms=int(env.get("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "5000")),
            socket_timeout_ms=int(env.get("MONGODB_SOCKET_TIMEOUT_MS", "45000")),
            allowed_origins=_split_origins(env.get("ALLOWED_ORIGINS")),
            host=env.get("HOSTNAME", "0.0.0.0"),
            port=int(env.get("PORT", "3001")),
            store=env.get("RELAY_STORE", "mongodb").lower(),
        )

    def validate(self) -> None:
        if self.store not in ("mongodb", "memory"):
            raise ValueError(f"Unsupported store backend: {self.store}")
        if self.store == "mongodb" and not self.mongo_uri:
            raise ValueError("Please set MONGODB_URI (e.g. in .env.local) or use RELAY_STORE=memory")
