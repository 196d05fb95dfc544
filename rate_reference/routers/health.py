"""Health check endpoints"""

from fastapi import APIRouter, Depends, HTTPException

from rate_reference.dependencies import get_lookup_service
from rate_reference.services.lookup import RateLookupService

router = APIRouter()


@router.get("/healthz")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "rate-reference"}


@router.get("/readyz")
async def readiness_check(service: RateLookupService = Depends(get_lookup_service)):
    """Readiness check with cache and fetcher state"""
    try:
        return {
            "status": "ready",
            "service": "rate-reference",
            "dependencies": {
                "cache": service.cache.get_stats(),
                "fetcher": service.fetcher.get_stats(),
            }
        }
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Service not ready: {str(e)}"
        )
