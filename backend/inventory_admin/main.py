import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine.url import make_url

from inventory_admin.admin.router import router as admin_router
from inventory_admin.auth.router import router as auth_router
from inventory_admin.core.config import settings
from inventory_admin.core.errors import register_exception_handlers
from inventory_admin.db.init_db import init_db
from inventory_admin.system.middleware import RequestContextMiddleware
from inventory_admin.system.router import router as system_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Inventory Admin", version="0.1.0")

# The refresh cookie is only sent cross-origin with credentials enabled.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)


@app.on_event("startup")
def on_startup() -> None:
    db_url = make_url(settings.DATABASE_URL)
    logger.info(
        "Starting inventory admin: env=%s db=%s/%s access_ttl=%s refresh_ttl=%s cookie=%s",
        settings.ENV,
        db_url.get_backend_name(),
        db_url.host or "local",
        settings.JWT_ACCESS_EXPIRES,
        settings.JWT_REFRESH_EXPIRES,
        settings.REFRESH_COOKIE_NAME,
    )
    init_db()


app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(admin_router, prefix="/api/v1/admin", tags=["admin"])
app.include_router(system_router, tags=["system"])
