"""Medicare rate lookup endpoints"""

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
import structlog

from rate_reference.config import settings
from rate_reference.dependencies import get_lookup_service
from rate_reference.metrics import LOOKUP_CODES
from rate_reference.schemas.rates import LookupRequest, LookupResponse
from rate_reference.services.formatter import format_reference_block
from rate_reference.services.lookup import RateLookupService, normalize_codes

logger = structlog.get_logger()

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


@router.post("/lookup", response_model=LookupResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def lookup_rates(
    request: Request,
    body: LookupRequest,
    service: RateLookupService = Depends(get_lookup_service)
):
    """Look up Medicare benchmark rates for a batch of codes"""
    requested = len(normalize_codes(body.codes))
    rates = await service.lookup(body.codes, body.state)

    LOOKUP_CODES.labels(outcome="found").inc(len(rates))
    LOOKUP_CODES.labels(outcome="missing").inc(requested - len(rates))

    return LookupResponse(
        rates=rates,
        requested=requested,
        found=len(rates),
        reference=format_reference_block(rates),
    )
