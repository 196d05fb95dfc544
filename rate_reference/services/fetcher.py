"""Outbound calls to the CMS Medicare provider/service dataset API"""

import asyncio
from typing import Any, Dict, List, Optional
import httpx
import structlog
from pydantic import ValidationError

from rate_reference.cache import CacheKey, TTLCacheStore
from rate_reference.config import settings
from rate_reference.errors import MalformedResponseError, TransportError
from rate_reference.schemas.rates import RawRateRow
from rate_reference.services.rate_limiter import PolitenessLimiter

logger = structlog.get_logger()

CODE_FILTER = "filter[HCPCS_Cd]"
STATE_FILTER = "filter[Rndrng_Prvdr_State_Abrvtn]"


def parse_rows(payload: Any) -> List[RawRateRow]:
    """Parse a decoded API payload into rows"""
    if not isinstance(payload, list):
        raise MalformedResponseError(f"Expected a JSON array, got {type(payload).__name__}")

    rows = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise MalformedResponseError(f"Row {index} is {type(item).__name__}, not an object")
        try:
            rows.append(RawRateRow.model_validate(item))
        except ValidationError as e:
            raise MalformedResponseError(f"Row {index} failed validation: {e}") from e
    return rows


class RateFetchCoordinator:
    """
    Owns every request to the dataset API.

    Concurrent fetches for the same key share one in-flight task, each
    distinct call waits on the politeness limiter, and successful responses
    (including empty ones) are written to the cache. ``fetch`` never raises
    for transport or payload problems; it returns an empty list instead.
    """

    def __init__(
        self,
        cache: TTLCacheStore,
        limiter: Optional[PolitenessLimiter] = None,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.cache = cache
        self.limiter = limiter or PolitenessLimiter()
        self.base_url = base_url or settings.get_base_url()
        self.page_size = page_size or settings.cms_page_size
        self.timeout = timeout or settings.fetch_timeout_seconds
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.timeout,
            headers={"Accept": "application/json"},
        )
        self._in_flight: Dict[CacheKey, asyncio.Task] = {}
        self.outbound_calls = 0
        self.failures = 0
        self.coalesced = 0

    async def __aenter__(self) -> "RateFetchCoordinator":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        """Close the HTTP client if this coordinator created it"""
        if self._owns_client:
            await self.client.aclose()

    def build_params(self, key: CacheKey) -> Dict[str, str]:
        params = {CODE_FILTER: key.code, "size": str(self.page_size)}
        if not key.is_national:
            params[STATE_FILTER] = key.region
        return params

    async def fetch(self, code: str, region: Optional[str] = None) -> List[RawRateRow]:
        """Fetch rows for code, filtered to region when one is given"""
        key = CacheKey.for_lookup(code, region)

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run_flight(key))
            self._in_flight[key] = task
        else:
            self.coalesced += 1
            logger.debug("Joining in-flight CMS fetch", key=str(key))

        rows = await asyncio.shield(task)
        return list(rows)

    async def _run_flight(self, key: CacheKey) -> List[RawRateRow]:
        try:
            await self.limiter.acquire()
            rows = await self._request(key)
        except (TransportError, MalformedResponseError) as e:
            self.failures += 1
            logger.warning(
                "CMS API lookup failed",
                hcpcs_code=key.code,
                state=key.region,
                status_code=getattr(e, "status_code", None),
                error=str(e),
            )
            return []
        except Exception as e:
            self.failures += 1
            logger.warning(
                "Unexpected error during CMS API lookup",
                hcpcs_code=key.code,
                state=key.region,
                error=f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            return []
        finally:
            self._in_flight.pop(key, None)

        self.cache.put(key, rows)
        logger.info("CMS rows fetched", hcpcs_code=key.code, state=key.region, rows=len(rows))
        return rows

    async def _request(self, key: CacheKey) -> List[RawRateRow]:
        self.outbound_calls += 1
        try:
            response = await asyncio.wait_for(
                self.client.get(
                    self.base_url,
                    params=self.build_params(key),
                    headers={"Accept": "application/json"},
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise TransportError(f"CMS API returned {response.status_code}", status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Response is not JSON: {e}") from e

        return parse_rows(payload)

    def get_stats(self) -> Dict[str, Any]:
        """Get fetch statistics"""
        return {
            'outbound_calls': self.outbound_calls,
            'failures': self.failures,
            'coalesced': self.coalesced,
            'in_flight': len(self._in_flight),
        }
