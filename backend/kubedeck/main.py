import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from kubedeck import __version__
from kubedeck.api.router import api_router
from kubedeck.config import get_settings
from kubedeck.core.logging import get_logger, setup_logging
from kubedeck.core.request_context import request_id_var
from kubedeck.dependencies import get_client_provider
from kubedeck.exceptions import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = get_logger(__name__)
    settings = get_settings()
    logger.info("kubedeck starting (env=%s, kubeconfig=%s)", settings.app_env, settings.kubeconfig_file)

    yield

    # Close the cached cluster client, if one was built
    if get_client_provider.cache_info().currsize:
        get_client_provider().invalidate()
    logger.info("kubedeck stopped")


def create_app() -> FastAPI:
    # Logging must be configured before the first request
    setup_logging()
    settings = get_settings()

    app = FastAPI(
        title="kubedeck",
        description="REST API over a Kubernetes cluster's nodes, namespaces, deployments and pods",
        version=__version__,
        debug=settings.is_debug,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(api_router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
