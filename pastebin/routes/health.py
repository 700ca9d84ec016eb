"""
Health check route.
"""
from fastapi import APIRouter, Depends

from pastebin.lifecycle import PasteService, get_paste_service
from pastebin.models import HealthCheck

router = APIRouter()


@router.get("/api/healthz", response_model=HealthCheck)
def health_check(service: PasteService = Depends(get_paste_service)) -> HealthCheck:
    """
    Health check endpoint.
    Always returns 200; ok reflects whether the paste store is reachable.
    """
    return HealthCheck(ok=service.is_healthy())
