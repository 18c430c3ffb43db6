import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from common.config.settings import (
    API_PREFIX,
    CORS_ORIGINS,
    LOG_LEVEL,
    BOOTSTRAP_ADMIN_EMAIL,
    BOOTSTRAP_ADMIN_PASSWORD,
    BOOTSTRAP_ADMIN_NAME,
)
from common.db.database import Base, engine, SessionLocal
from common.errors import register_exception_handlers
from user_service.app.backend.routers import auth_router, users_router, admin_router
from user_service.app.backend.services import auth_service
from marketplace_service.app.backend.routers import (
    games_router,
    coaches_router,
    applications_router,
    services_router,
    requests_router,
    chats_router,
    reviews_router,
    notifications_router,
    admin_marketplace_router,
)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Cache-Control": "no-store",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def seed_bootstrap_admin():
    if not (BOOTSTRAP_ADMIN_EMAIL and BOOTSTRAP_ADMIN_PASSWORD):
        return
    db = SessionLocal()
    try:
        auth_service.ensure_bootstrap_admin(db, BOOTSTRAP_ADMIN_EMAIL, BOOTSTRAP_ADMIN_PASSWORD, BOOTSTRAP_ADMIN_NAME)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    seed_bootstrap_admin()
    logger.info("GamerHelpers API started, routes under %s", API_PREFIX)
    yield
    logger.info("GamerHelpers API stopped")

app = FastAPI(title="GamerHelpers API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response

register_exception_handlers(app)

app.include_router(auth_router.router, prefix=API_PREFIX)
app.include_router(users_router.router, prefix=API_PREFIX)
app.include_router(admin_router.router, prefix=API_PREFIX)
app.include_router(games_router.router, prefix=API_PREFIX)
app.include_router(coaches_router.router, prefix=API_PREFIX)
app.include_router(applications_router.router, prefix=API_PREFIX)
app.include_router(services_router.router, prefix=API_PREFIX)
app.include_router(requests_router.router, prefix=API_PREFIX)
app.include_router(chats_router.router, prefix=API_PREFIX)
app.include_router(reviews_router.router, prefix=API_PREFIX)
app.include_router(notifications_router.router, prefix=API_PREFIX)
app.include_router(admin_marketplace_router.router, prefix=API_PREFIX)

@app.get(f"{API_PREFIX}/health")
async def health():
    return {"status": "OK"}
