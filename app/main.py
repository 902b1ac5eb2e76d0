import logging
import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.core.config import settings
from app.api.routes import api_router
from app.core.logging_config import setup_logging
from app.core.error_handlers import register_error_handlers
from app.core.rbac_matrix import get_rbac_matrix

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("*"*50)
    logger.info(f"Starting application: {settings.PROJECT_NAME}")
    logger.info("*"*50)

    # Load and validate the matrix before serving
    matrix = get_rbac_matrix()
    logger.info(f"RBAC matrix v{matrix.version} ready ({len(matrix.role_defaults)} roles).")

    PORT = os.getenv("PORT", "8086")
    BASE_URL = f"http://127.0.0.1:{PORT}"
    logger.info(f"API Docs (Swagger UI): {BASE_URL}{settings.API_V1_STR}/docs")
    logger.info(f"API Docs (ReDoc):      {BASE_URL}{settings.API_V1_STR}/redoc")
    logger.info("*"*50)

    yield

    logger.info("*"*50)
    logger.info(f"Stopping application: {settings.PROJECT_NAME}")
    logger.info("*"*50)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Multi-tenant IT service desk API: clients, organization, hours banks, inventory, catalog and RBAC.",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    lifespan=lifespan
)

# --- CORS ---
if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"Configuring CORS for origins: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin).strip("/") for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    logger.warning("CORS not configured (BACKEND_CORS_ORIGINS not set)")

register_error_handlers(app)

app.include_router(api_router, prefix=settings.API_V1_STR)
logger.info(f"API routers mounted under: {settings.API_V1_STR}")

@app.get("/", tags=["Root"], include_in_schema=False)
def read_root() -> dict:
    return {"status": "ok", "message": f"Welcome to {settings.PROJECT_NAME}"}
