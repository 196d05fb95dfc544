"""FastAPI dependencies"""

from fastapi import HTTPException, Request

from rate_reference.services.lookup import RateLookupService


def get_lookup_service(request: Request) -> RateLookupService:
    """Lookup service created by the application lifespan"""
    service = getattr(request.app.state, "lookup_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Lookup service not initialized")
    return service
