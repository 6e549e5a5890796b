from fastapi import APIRouter, Depends

from uploads_api.adapters import Adapters
from uploads_api.config.settings import Settings
from uploads_api.dependencies import get_adapters, get_settings_from_app
from uploads_api.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health_check(
    settings: Settings = Depends(get_settings_from_app),
    adapters: Adapters = Depends(get_adapters),
) -> HealthResponse:
    """
    Health check endpoint for monitoring API status and component readiness.

    Returns status of storage, metadata store and event topic along with deployment mode.
    """
    components = {"api": "ready"}
    checks = {
        "storage": adapters.storage,
        "metadata": adapters.metadata,
        "events": adapters.events,
    }

    for name, adapter in checks.items():
        try:
            adapter.ping()
            components[name] = "ready"
        except Exception as e:
            components[name] = f"error: {str(e)}"

    ready = all(state == "ready" for state in components.values())
    return HealthResponse(
        status="ok" if ready else "degraded",
        deployment_mode=settings.deployment_mode,
        components=components,
        ready=ready,
    )
