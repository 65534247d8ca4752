from fastapi import FastAPI
from orderdesk.core.config import settings
from orderdesk.core.logs import setup_logging
from orderdesk.api.routes import api_router
from orderdesk.db.session import engine
from orderdesk.db.base import Base
from orderdesk.db import models  # noqa: F401  (registers tables on Base)

def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Orderdesk API",
        version="0.1.0",
        openapi_url="/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.on_event("startup")
    def on_startup():
        # dev convenience: create tables on startup
        if settings.CREATE_TABLES:
            Base.metadata.create_all(bind=engine)

    return app

app = create_app()
