# main.py
import logging
import logging.config
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marcha.core.config import Settings, get_settings
from marcha.core.firebase import init_firebase
from marcha.core.midtrans import MidtransClient
from marcha.services.errors import ReconciliationError
from marcha.services.orchestrator import ReconciliationOrchestrator
from marcha.services.store import FirestoreOrderStore, OrderLedgerStore

logger = logging.getLogger("marcha")


# ------------------------------------------------------------
# 1. LOGGING
# ------------------------------------------------------------
def configure_logging(settings: Settings) -> None:
    level = "INFO" if settings.ENVIRONMENT == "production" else "DEBUG"
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "loggers": {
            "uvicorn": {"handlers": ["console"], "level": level},
            "uvicorn.error": {"handlers": ["console"], "level": level},
            "uvicorn.access": {"handlers": ["console"], "level": level},
            "marcha": {"handlers": ["console"], "level": level, "propagate": False},
        },
    })


# ------------------------------------------------------------
# 2. APP FACTORY
# ------------------------------------------------------------
def create_app(
    settings: Optional[Settings] = None,
    store: Optional[OrderLedgerStore] = None,
    gateway: Optional[MidtransClient] = None,
) -> FastAPI:
    """
    Build the API. Clients that are not injected are created in the lifespan
    and owned by it.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned_gateway = None

        if store is None:
            app.state.store = FirestoreOrderStore.from_settings(init_firebase(settings), settings)
        else:
            app.state.store = store

        if gateway is None:
            owned_gateway = MidtransClient.from_settings(settings)
            app.state.gateway = owned_gateway
        else:
            app.state.gateway = gateway

        app.state.orchestrator = ReconciliationOrchestrator(app.state.store)
        logger.info(f"🚀 {settings.PROJECT_NAME} API started | Env: {settings.ENVIRONMENT} | Debug: {settings.DEBUG}")
        try:
            yield
        finally:
            if owned_gateway is not None:
                await owned_gateway.aclose()
            logger.info("👋 API shutting down")

    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        description="Web API for Marcha Social Payment App",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ------------------------------------------------------------
    # 3. CORS
    # ------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------
    # 4. ROUTERS
    # ------------------------------------------------------------
    from marcha.routers import payment_router, system_router

    app.include_router(system_router.router)
    app.include_router(payment_router.router)

    # ------------------------------------------------------------
    # 5. EXCEPTION HANDLERS
    # ------------------------------------------------------------
    @app.exception_handler(ReconciliationError)
    async def reconciliation_error_handler(request: Request, exc: ReconciliationError):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status_code": str(exc.status_code),
                "status_message": exc.message,
                "retryable": exc.retryable,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "status_code": "500",
                "status_message": "Something went wrong. We're on it.",
                "request_id": request.headers.get("X-Request-ID"),
            },
        )

    # ------------------------------------------------------------
    # 6. REQUEST LOGGING MIDDLEWARE
    # ------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        client = request.client.host if request.client else "-"
        logger.info(f"➡️ {client} {request.method} {request.url.path}")
        response = await call_next(request)
        logger.info(f"⬅️ {request.method} {request.url.path} → {response.status_code}")
        return response

    return app
