"""
TenderDesk - FastAPI Application
Run with: uvicorn app.main:app --reload (from the backend/ directory)
"""

import sys
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.config import settings
from app.core.database import init_db
from app.core.exceptions import TenderDeskError
from app.api.routes import router
from app.api.auth_routes import auth_router
from app.api.crm_routes import crm_router
from app.api.finance_routes import finance_router
from app.api.admin_routes import admin_router
from app.api.report_routes import report_router


def configure_logging() -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    init_db()
    if not settings.AI_API_KEY:
        logger.warning("AI_API_KEY not set: AI features are disabled")
    yield
    logger.info("Shutting down")


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TenderDeskError)
    async def tenderdesk_error_handler(request: Request, exc: TenderDeskError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    app.include_router(router)
    app.include_router(auth_router)
    app.include_router(crm_router)
    app.include_router(finance_router)
    app.include_router(admin_router)
    app.include_router(report_router)
    return app


app = create_app()
