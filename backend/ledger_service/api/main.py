import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ledger_service.api.errors import install_error_handlers
from ledger_service.api.routes.accounts import router as accounts_router
from ledger_service.api.routes.health import router as health_router
from ledger_service.api.routes.transactions import router as transactions_router
from ledger_service.settings import configure_logging, get_settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Account Ledger API", version="0.1.0")

    # the browser UI is served from another origin
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    install_error_handlers(app)

    @app.on_event("startup")
    def _startup() -> None:
        if settings.uses_sql:
            # Fail fast if DB unreachable + ensure tables exist
            from ledger_service.db import init_db

            init_db()
            logger.info("Ledger store: SQL")
        else:
            logger.info("Ledger store: in-memory")

    app.include_router(health_router)
    app.include_router(accounts_router)
    app.include_router(transactions_router)
    return app


app = create_app()
