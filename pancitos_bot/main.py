"""FastAPI application initialization."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import logfire
import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sentry_sdk.integrations.fastapi import FastApiIntegration

from pancitos_bot import __version__
from pancitos_bot.api import authorize, health, webhook
from pancitos_bot.config import get_settings
from pancitos_bot.logging_config import setup_logfire
from pancitos_bot.middleware.correlation_id import CorrelationIDMiddleware
from pancitos_bot.services.signature import SignatureError

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load configuration and observability before serving any request."""
    # Raises ConfigurationError when a required secret is missing, which
    # aborts startup before the server binds its socket
    settings = get_settings()

    setup_logfire(app)

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.env,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            integrations=[FastApiIntegration()],
        )

    logfire.info(
        "Application startup complete",
        environment=settings.env,
        server_url=settings.server_url,
        graph_api_version=settings.graph_api_version,
        allow_unsigned_webhooks=settings.allow_unsigned_webhooks,
    )
    if settings.allow_unsigned_webhooks:
        logfire.warn("Unsigned webhook requests are accepted; do not use in production")

    yield

    logfire.info("Application shutdown complete")


app = FastAPI(
    title="Pancitos DevC Messenger Bot",
    description="Facebook Messenger webhook with scripted replies",
    version=__version__,
    lifespan=lifespan,
)

# Correlation ID middleware (must be first for request tracing)
app.add_middleware(CorrelationIDMiddleware)


@app.exception_handler(SignatureError)
async def signature_error_handler(request: Request, exc: SignatureError):
    """Reject requests whose signature can't be validated."""
    logger.warning("Rejected webhook request: %s", exc)
    return JSONResponse(status_code=403, content={"detail": str(exc)})


app.include_router(health.router, tags=["health"])
app.include_router(webhook.router, prefix="/webhook", tags=["webhook"])
app.include_router(authorize.router, tags=["account-linking"])
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Pancitos DevC Messenger Bot",
        "version": __version__,
    }


if __name__ == "__main__":
    from pancitos_bot.cli.main import serve

    serve()
