from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from cutrix.application import configure_store, seed_admin
from cutrix.core.logging_conf import configure_logging
from cutrix.core.settings import load_settings
from cutrix.infrastructure import HttpProductionStore, PersistenceError
from cutrix.routes import orders, plans, tasks, users


def create_app() -> FastAPI:
    app = FastAPI(title="Cutrix Cutting Plan API", version="0.1.0")

    settings = load_settings()
    configure_logging(settings.log_level)

    if settings.store_url:
        store = HttpProductionStore(
            settings.store_url,
            token=settings.store_token or None,
            timeout=settings.store_timeout,
        )
        configure_store(store)
        logger.info("using remote production store at {}", settings.store_url)
    else:
        seed_admin(settings.admin_name, settings.admin_password)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(orders.router, prefix="/api")
    app.include_router(plans.router, prefix="/api")
    app.include_router(tasks.router, prefix="/api")
    app.include_router(users.router, prefix="/api")

    @app.exception_handler(PersistenceError)
    async def persistence_unavailable(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("{} {}: production store failed: {}", request.method, request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": {"kind": exc.kind, "reason": str(exc)}})

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Cutrix Cutting Plan API",
                "docs": "/docs",
                "health": "/api/plans",
            }
        )

    return app


app = create_app()
