from fastapi import Request

from uploads_api.adapters import Adapters
from uploads_api.config.settings import Settings
from uploads_api.services.uploads import UploadService


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_adapters(request: Request) -> Adapters:
    """Adapters opened by the application lifespan."""
    return request.app.state.adapters


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service
