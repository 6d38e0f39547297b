from fastapi import APIRouter, Depends

from storefront_gateway.api.deps import get_health_monitor
from storefront_gateway.core.health import HealthMonitor
from storefront_gateway.models.schemas import HealthSnapshot

router = APIRouter()


@router.get("", response_model=HealthSnapshot, response_model_by_alias=True)
async def read_backend_status(monitor: HealthMonitor = Depends(get_health_monitor)):
    """Advisory upstream status, as shown by the backend status banner."""
    return monitor.snapshot()


@router.post("/dismiss", response_model=HealthSnapshot, response_model_by_alias=True)
async def dismiss_banner(monitor: HealthMonitor = Depends(get_health_monitor)):
    monitor.dismiss()
    return monitor.snapshot()
