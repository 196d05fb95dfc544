"""
Shared fixtures for the rate reference test suite.

The CMS dataset API is replaced by an httpx.MockTransport that serves
canned rows keyed by (code, state) and records every outbound request.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from rate_reference.cache import TTLCacheStore
from rate_reference.services.fetcher import CODE_FILTER, STATE_FILTER, RateFetchCoordinator
from rate_reference.services.lookup import RateLookupService
from rate_reference.services.rate_limiter import PolitenessLimiter


TEST_BASE_URL = "https://data.cms.test/data-api/v1/dataset/test-uuid/data"


def cms_row(allowed=None, submitted=None, payment=None, description="Office/outpatient visit est", state="CA"):
    """Build one row the way the CMS API returns it (money values as strings)"""
    return {
        "HCPCS_Desc": description,
        "Rndrng_Prvdr_State_Abrvtn": state,
        "Avg_Mdcr_Alowd_Amt": None if allowed is None else str(allowed),
        "Avg_Sbmtd_Chrg": None if submitted is None else str(submitted),
        "Avg_Mdcr_Pymt_Amt": None if payment is None else str(payment),
    }


OFFICE_VISIT_ROWS = [
    cms_row(allowed=100, submitted=150, payment=90),
    cms_row(allowed=120, submitted=160, payment=95),
    cms_row(allowed=110, submitted=170, payment=100),
]


class FakeClock:
    """Manually advanced time source"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeSleep:
    """Records requested delays and advances the paired clock instead of sleeping"""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.delays: List[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)
        self.clock.advance(seconds)


class StubCMSApi:
    """
    Canned dataset API.

    ``responses`` maps (code, state-or-None) to a row list, an int status
    code, a raw string body, or an exception instance to raise.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, Optional[str]], object]] = None, delay: float = 0.0):
        self.responses = responses or {}
        self.delay = delay
        self.requests: List[httpx.Request] = []

    @property
    def calls(self) -> List[Tuple[str, Optional[str]]]:
        return [
            (r.url.params.get(CODE_FILTER), r.url.params.get(STATE_FILTER))
            for r in self.requests
        ]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)

        key = (request.url.params.get(CODE_FILTER), request.url.params.get(STATE_FILTER))
        payload = self.responses.get(key, [])

        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, int):
            return httpx.Response(payload, json={"error": "unavailable"})
        if isinstance(payload, str):
            return httpx.Response(200, content=payload.encode(), headers={"content-type": "application/json"})
        return httpx.Response(200, json=payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cms_api() -> StubCMSApi:
    return StubCMSApi({("99213", None): OFFICE_VISIT_ROWS})


@pytest.fixture
def cache(clock) -> TTLCacheStore:
    return TTLCacheStore(ttl_seconds=24 * 60 * 60, max_items=64, clock=clock)


@pytest.fixture
def make_service(cache):
    """Factory wiring a lookup service to a stub API with no politeness delay"""

    def _make(api: StubCMSApi, min_interval: float = 0.0, timeout: float = 10.0) -> RateLookupService:
        fetcher = RateFetchCoordinator(
            cache=cache,
            limiter=PolitenessLimiter(min_interval=min_interval),
            client=api.client(),
            base_url=TEST_BASE_URL,
            page_size=500,
            timeout=timeout,
        )
        return RateLookupService(cache=cache, fetcher=fetcher)

    return _make


@pytest.fixture
def service(make_service, cms_api) -> RateLookupService:
    return make_service(cms_api)
