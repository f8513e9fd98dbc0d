"""
EngageHub OAuth gateway — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI

from api.dependencies import get_connector_registry, init_webhook_verifiers
from api.middleware import register_middleware
from api.oauth import router as oauth_router
from api.webhooks import router as webhooks_router
from config.settings import config
from database.helpers import init_models, purge_expired_code_claims, purge_processed_webhook_events
from database.session import async_session_factory, engine

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "urllib3", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="EngageHub OAuth Gateway",
        version="1.0.0",
        description="Single-use OAuth code exchange and signed webhook intake.",
    )

    register_middleware(app)

    # Routes
    app.include_router(oauth_router, prefix="/api/v1/oauth")
    app.include_router(webhooks_router, prefix="/api/v1/webhooks")

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        # raises ConfigurationError (aborting startup) when a signing secret is missing
        enabled = init_webhook_verifiers()
        logger.info("Webhook intake enabled for: %s", enabled or "none")

        logger.info("Ensuring claim tables exist…")
        await init_models(engine)

        purged = await purge_expired_code_claims(
            async_session_factory, config.code_claim_retention_seconds,
        )
        if purged:
            logger.info("Removed %d expired code claims from previous runs", purged)
        if config.webhook_dedup_backend == "database":
            await purge_processed_webhook_events(
                async_session_factory, config.webhook_dedup_ttl_seconds,
            )

        registry = get_connector_registry()
        logger.info("Configured connectors: %s", registry.list_configured() or "none")

        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await engine.dispose()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
