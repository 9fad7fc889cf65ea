"""Application factory.

Run with ``uvicorn taskhub.main:create_app --factory`` or the ``taskhub``
console script.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskhub.config import DEV_JWT_SECRET, Settings
from taskhub.context import AppContext
from taskhub.errors import install_error_handlers
from taskhub.log import configure_logging, install_request_logging
from taskhub.routes.auth import router as auth_router
from taskhub.routes.health import router as health_router
from taskhub.routes.projects import router as projects_router
from taskhub.routes.tasks import router as tasks_router
from taskhub.routes.users import router as users_router

logger = logging.getLogger(__name__)

def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings)

    if settings.app_env == "prod" and settings.jwt_secret == DEV_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")

    ctx = AppContext.build(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("taskhub-api starting (env=%s)", settings.app_env)
        yield
        ctx.close()

    app = FastAPI(title="taskhub-api", version="0.1.0", lifespan=lifespan)
    app.state.ctx = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_request_logging(app)
    install_error_handlers(app, debug=settings.app_env == "dev")

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(projects_router)
    app.include_router(tasks_router)
    app.include_router(users_router)
    return app

def run() -> None:
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.app_host, port=settings.app_port)
