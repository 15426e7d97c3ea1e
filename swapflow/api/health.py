from typing import Any, Dict

from fastapi import APIRouter, Request

from ..config import settings

router = APIRouter()


@router.get("/healthz")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check reporting routing and swap coordinator status"""

    coordinator = getattr(request.app.state, "coordinator", None)

    return {
        "status": "healthy" if coordinator is not None else "degraded",
        "routing": {
            "provider": "lifi",
            "base_url": settings.lifi_base_url,
            "api_key": settings.has_lifi_key,
        },
        "swaps": {
            "coordinator": coordinator is not None,
            "store": type(coordinator.store).__name__ if coordinator is not None else None,
            "in_flight": len(coordinator.in_flight) if coordinator is not None else 0,
        },
    }
