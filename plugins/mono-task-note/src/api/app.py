"""FastAPI application factory for the mono-task-note REST API."""

from fastapi import APIRouter, FastAPI

from api.routes import register_routes


def create_app(manager) -> FastAPI:
    """Build and return a FastAPI app wired to the given TaskManager."""
    app = FastAPI(title="mono-task-note", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_routes(api, manager)
    app.include_router(api)

    return app
