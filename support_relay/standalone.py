"""Standalone relay server.

Usage::

    poetry run support-relay

    # In-memory store, custom port:
    RELAY_STORE=memory PORT=9000 poetry run support-relay

Environment variables (see RelayConfig.from_env):
    MONGODB_URI     : MongoDB connection string (required for the MongoDB store)
    MONGODB_DB      : Database name (default: speicher)
    ALLOWED_ORIGINS : Comma separated CORS origins (default: *)
    HOSTNAME / PORT : Bind address (default: 0.0.0.0:3001)
    RELAY_STORE     : "mongodb" (default) or "memory"

Loads .env.local and .env from the current working directory or any parent directory.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from support_relay.config import RelayConfig
from support_relay.store import MemorySessionStore, SessionStore

logger = logging.getLogger(__name__)


def create_store(config: RelayConfig) -> SessionStore:
    """Instantiate the configured store backend."""
    config.validate()
    if config.store == "memory":
        return MemorySessionStore()
    from support_relay.store import MongoDBSessionStore
    return MongoDBSessionStore(
        mongo_uri=config.mongo_uri,
        mongo_db=config.mongo_db,
        sessions_collection=config.sessions_collection,
        messages_collection=config.messages_collection,
        max_pool_size=config.max_pool_size,
        server_selection_timeout_ms=config.server_selection_timeout_ms,
        socket_timeout_ms=config.socket_timeout_ms,
    )


def create_app(config: Optional[RelayConfig] = None, store: Optional[SessionStore] = None):
    """Create the FastAPI application.

    The store is connected and verified during startup; a failing MongoDB
    connection aborts startup.
    """
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import PlainTextResponse

    from support_relay.api import RelayHub
    from support_relay.server import build_ws_router

    config = config or RelayConfig.from_env()
    store = store or create_store(config)
    hub = RelayHub(store)

    @asynccontextmanager
    async def lifespan(_a):
        ping = getattr(store, "ping", None)
        if ping is not None:
            await ping()
            await store.ensure_indexes()
        logger.info(f"[SERVER] Relay ready ({type(store).__name__})")
        try:
            yield
        finally:
            logger.info("[SERVER] Shutting down gracefully...")
            await store.close()

    _app = FastAPI(title="support-relay", docs_url=None, redoc_url=None, lifespan=lifespan)
    _app.state.relay_hub = hub
    _app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials=True,
    )

    @_app.get("/", response_class=PlainTextResponse)
    async def index():
        return "Support relay is running"

    _app.include_router(build_ws_router(hub))
    return _app


def main():
    """Load .env, configure logging, and start the server."""
    from dotenv import load_dotenv, find_dotenv
    load_dotenv(find_dotenv(".env.local", usecwd=True))
    load_dotenv(find_dotenv(usecwd=True))

    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )

    config = RelayConfig.from_env()
    print(f"\n  support-relay → http://{config.host}:{config.port}\n")
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
