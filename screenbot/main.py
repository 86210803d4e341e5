"""
screenbot/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Wires the store, guards, provider and orchestrator at startup
- Registers API routes (webhook, health)
- No business logic should be written here
"""

from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from screenbot.core.config import Settings, settings, validate_settings
from screenbot.core.errors import add_exception_handlers
from screenbot.core.logging import setup_logging, get_logger
from screenbot.db.indexes import create_indexes
from screenbot.db.mongo import connect_to_mongo, close_mongo_connection, get_kv_collection
from screenbot.flow.dispatcher import ConversationOrchestrator
from screenbot.schemas.response import ReadinessResponse
from screenbot.services.guard_service import CommandDeduplicator, MessageDeduplicator, RateLimiter
from screenbot.services.notifier_service import ResultNotifier
from screenbot.services.optout_service import OptOutRegistry
from screenbot.services.outbound_service import OutboundChannel
from screenbot.services.provider_service import MessagingProvider, build_provider
from screenbot.services.session_service import SessionStore
from screenbot.services.store_service import KeyedStore
from screenbot.api import webhook

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


def build_services(
    app: FastAPI,
    store: KeyedStore,
    provider: MessagingProvider,
    notifier: ResultNotifier,
    config: Settings = settings,
) -> ConversationOrchestrator:
    """
    Builds the conversation stack and attaches it to app.state.
    Configuration is passed in explicitly; nothing below reads settings.
    """
    outbound = OutboundChannel(provider, store, config.outbound_config())
    orchestrator = ConversationOrchestrator(
        sessions=SessionStore(store),
        optouts=OptOutRegistry(store),
        command_dedup=CommandDeduplicator(store),
        rate_limiter=RateLimiter(store, config.guard_config()),
        outbound=outbound,
        notifier=notifier,
        config=config.screening_config(),
    )

    app.state.store = store
    app.state.provider = provider
    app.state.notifier = notifier
    app.state.message_dedup = MessageDeduplicator(store)
    app.state.orchestrator = orchestrator
    return orchestrator


async def startup(app: FastAPI):
    """Opens the store and provider connections and wires the services."""
    validate_settings()

    await connect_to_mongo()
    await create_indexes()

    provider = build_provider(settings)
    notifier = ResultNotifier(settings.RESULT_WEBHOOK_URL, timeout=settings.PROVIDER_TIMEOUT_SECONDS)
    build_services(app, KeyedStore(get_kv_collection()), provider, notifier)

    logger.info(f"🎉 Screening bot ready (provider={provider.name}, environment={settings.ENVIRONMENT})")


async def shutdown(app: FastAPI):
    """Flushes pending result notifications before closing connections."""
    state = app.state
    if getattr(state, "notifier", None) is not None:
        await state.notifier.aclose()
    if getattr(state, "provider", None) is not None:
        await state.provider.aclose()
    await close_mongo_connection()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting screening bot...")
    try:
        await startup(app)
    except Exception as e:
        logger.critical(f"Startup failed: {e}", exc_info=True)
        raise

    yield

    logger.info("🛑 Shutting down screening bot...")
    try:
        await shutdown(app)
    except Exception as e:
        logger.error(f"Shutdown did not complete cleanly: {e}", exc_info=True)


app = FastAPI(
    title="Screenbot - WhatsApp Candidate Pre-Screening",
    description="Persisted WhatsApp screening conversation with delivery guards",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

add_exception_handlers(app)

SLOW_REQUEST_SECONDS = 5.0


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"

    # Webhook acks return before processing, so a slow one means the store is slow
    if elapsed > SLOW_REQUEST_SECONDS:
        logger.warning(f"Slow request: {request.method} {request.url.path} ({elapsed:.2f}s)")

    return response


app.include_router(webhook.router, prefix=settings.API_PREFIX, tags=["Webhook"])


@app.get("/health", tags=["Health"], response_class=PlainTextResponse)
async def health_check():
    """Liveness: the process is up."""
    return "ok"


@app.get("/ready", tags=["Health"])
async def readiness_check(request: Request):
    """
    Readiness check - indicates if the key/value store answers.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        return JSONResponse(
            status_code=503,
            content=ReadinessResponse(status="not_ready", reason="not_started").model_dump()
        )

    if await store.ping():
        return ReadinessResponse(status="ready", checks={"store": "healthy"}).model_dump()

    return JSONResponse(
        status_code=503,
        content=ReadinessResponse(
            status="not_ready", checks={"store": "unhealthy"}, reason="store_unavailable"
        ).model_dump()
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "screenbot.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
