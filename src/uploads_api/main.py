from contextlib import asynccontextmanager
from textwrap import dedent
import logging

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute

from uploads_api.adapters import Adapters
from uploads_api.config.settings import Settings
from uploads_api.errors import (
    UploadsApiError,
    handle_broad_exceptions,
    handle_pydantic_validation_errors,
    handle_uploads_api_errors,
)
from uploads_api.routers.files import router as files_router
from uploads_api.routers.health import router as health_router
from uploads_api.services.uploads import UploadService

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the adapters on start-up and close them on shutdown."""
    settings: Settings = app.state.settings

    adapters = Adapters.from_settings(settings)
    try:
        if settings.create_resources_on_startup:
            adapters.provision(settings)
        elif settings.deployment_mode == "local-dev":
            # the local document store needs its tables even when nothing else is provisioned
            adapters.metadata.init_collections([settings.metadata_table_name])

        app.state.adapters = adapters
        app.state.upload_service = UploadService(adapters, settings)
        logger.info(f"Uploads API started in {settings.deployment_mode} mode")
        yield
    finally:
        adapters.close()
        logger.info("Uploads API adapters closed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Uploads API",
        summary="Upload files to object storage and track their metadata",
        version="v1",
        description=dedent(
            """\
        Files are written to S3 under generated keys, one metadata record is kept
        per upload request, and `uploaded` / `deleted` events are published to a topic.

        | Endpoint | Purpose |
        | --- | --- |
        | `POST /upload` | store files (multipart field `fileData`) |
        | `GET /files` | list every upload record |
        | `GET /files/{id}` | one upload record |
        | `GET /files/{id}/presigned` | one-hour download link |
        | `DELETE /files/{id}` | delete files, record, and announce it |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.include_router(files_router, tags=["files"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(
        exc_class_or_status_code=UploadsApiError,
        handler=handle_uploads_api_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    app_settings = Settings()
    uvicorn.run(create_app(app_settings), host=app_settings.host, port=app_settings.port)
