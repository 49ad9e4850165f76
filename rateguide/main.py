from contextlib import asynccontextmanager

from fastapi import FastAPI
from .logging import setup_logging
from .api.errors import install_error_handlers
from .api.routes import router as api_router
from .services.container import build_container

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "container", None) is None:
        app.state.container = build_container()
    try:
        yield
    finally:
        await app.state.container.aclose()
        app.state.container = None


def create_app(container=None) -> FastAPI:
    app = FastAPI(title="rateguide", lifespan=lifespan)
    app.state.container = container
    install_error_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
