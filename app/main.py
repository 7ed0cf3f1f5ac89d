from fastapi import FastAPI

from app.pharmops.api import api_router
from app.pharmops.core.config import settings
from app.pharmops.core.errors import setup_exception_handlers
from app.pharmops.core.logging import configure_logging
from app.pharmops.middleware.observability import ObservabilityMiddleware
from app.pharmops.middleware.tenant import TenantContextMiddleware
from app.pharmops.middleware.trace import TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(TenantContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
