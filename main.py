import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from core.blob import LocalBlobStore
from core.config import Settings, get_settings
from core.controller import Controller
from core.errors import ControllerError
from models.base import Base
from models import asset, project  # noqa: F401  register tables
from routers import asset_router, project_router, util_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, controller: Optional[Controller] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ctrl = controller or Controller(settings)
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=ctrl.engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        ctrl.close()

    app = FastAPI(title="spx builder backend", lifespan=lifespan)
    app.state.controller = ctrl

    # Respect X-Forwarded-Proto/Host when behind a proxy (Docker/nginx/etc.)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    app.include_router(project_router.router)
    app.include_router(asset_router.router)
    app.include_router(util_router.router)

    @app.exception_handler(ControllerError)
    async def controller_error_handler(request: Request, exc: ControllerError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unexpected error: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "internal", "detail": None},
        )

    # Local buckets are served directly, matching CDN_PREFIX in development
    if isinstance(ctrl.blob, LocalBlobStore):
        app.mount(settings.MEDIA_URL_PATH, StaticFiles(directory=str(ctrl.blob.root)), name="media")

    @app.get("/")
    def root():
        return {"message": "spx builder backend ready"}

    return app
