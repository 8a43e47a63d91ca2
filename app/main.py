import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import create_tables
from app.errors import register_error_handlers
from app.middleware import TimingMiddleware
from app.routers import ads, comments, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if settings.CREATE_TABLES_ON_STARTUP:
        await create_tables()
    logger.info("Classifieds API started (env=%s)", settings.APP_ENV)
    yield
    logger.info("Classifieds API shutting down")


app = FastAPI(
    title="Classifieds API",
    description="Ads, images and comments with owner-or-admin authorization",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Routers
app.include_router(ads.router)
app.include_router(comments.router)
app.include_router(users.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
