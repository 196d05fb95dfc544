"""Batch Medicare rate lookup with state-to-national fallback"""

import asyncio
from typing import Dict, Iterable, List, Optional, Tuple
import structlog

from rate_reference.cache import CacheKey, CacheStatus, TTLCacheStore
from rate_reference.schemas.rates import AggregatedRate, NATIONAL, RawRateRow
from rate_reference.services.aggregator import aggregate_rates
from rate_reference.services.fetcher import RateFetchCoordinator
from rate_reference.services.rate_limiter import PolitenessLimiter

logger = structlog.get_logger()


def normalize_codes(codes: Optional[Iterable[str]]) -> List[str]:
    """Trim codes, drop blanks and collapse duplicates keeping first-seen order"""
    if not codes:
        return []
    if isinstance(codes, str):
        codes = [codes]
    seen = {}
    for code in codes:
        if code is None:
            continue
        code = str(code).strip()
        if code and code not in seen:
            seen[code] = True
    return list(seen)


def normalize_region(region: Optional[str]) -> Optional[str]:
    """Two-letter state code in upper case, or None for a national lookup"""
    if region is None:
        return None
    region = region.strip()
    if not region or region.lower() == NATIONAL:
        return None
    if len(region) != 2 or not region.isalpha():
        logger.warning("Ignoring invalid state for rate lookup", state=region)
        return None
    return region.upper()


class RateLookupService:
    """Resolve Medicare benchmark rates for a batch of HCPCS/CPT codes"""

    def __init__(self, cache: TTLCacheStore, fetcher: RateFetchCoordinator):
        self.cache = cache
        self.fetcher = fetcher

    @classmethod
    def from_settings(cls) -> "RateLookupService":
        """Build the default wiring from application settings"""
        cache = TTLCacheStore()
        fetcher = RateFetchCoordinator(cache=cache, limiter=PolitenessLimiter())
        return cls(cache=cache, fetcher=fetcher)

    async def close(self):
        await self.fetcher.aclose()

    async def lookup(self, codes: Iterable[str], region: Optional[str] = None) -> Dict[str, AggregatedRate]:
        """
        Look up benchmark rates for codes.

        Args:
            codes: HCPCS/CPT codes; blanks and duplicates are ignored
            region: optional two-letter state abbreviation

        Returns:
            Mapping of code to AggregatedRate in first-seen code order.
            Codes without data at any tier are absent.
        """
        unique_codes = normalize_codes(codes)
        if not unique_codes:
            return {}

        state = normalize_region(region)
        resolved = await asyncio.gather(
            *(self._resolve_code(code, state) for code in unique_codes)
        )

        results = {}
        for code, rate in zip(unique_codes, resolved):
            if rate is not None:
                results[code] = rate

        logger.info(
            "Medicare rate lookup completed",
            requested=len(unique_codes),
            found=len(results),
            state=state or NATIONAL,
        )
        return results

    async def _resolve_code(self, code: str, state: Optional[str]) -> Optional[AggregatedRate]:
        try:
            rows, used_region = await self._rows_with_fallback(code, state)
            if not rows:
                logger.info("No CMS data for code", hcpcs_code=code, state=state or NATIONAL)
                return None
            return aggregate_rates(rows, code, used_region)
        except Exception as e:
            logger.error("Rate lookup failed for code", hcpcs_code=code, error=str(e), exc_info=True)
            return None

    async def _rows_with_fallback(self, code: str, state: Optional[str]) -> Tuple[List[RawRateRow], str]:
        if state:
            rows = await self._rows_for(CacheKey.for_lookup(code, state))
            if rows:
                return rows, state
            logger.debug("No state rows, falling back to national", hcpcs_code=code, state=state)

        return await self._rows_for(CacheKey.for_lookup(code)), NATIONAL

    async def _rows_for(self, key: CacheKey) -> List[RawRateRow]:
        status, entry = self.cache.lookup(key)
        if status is CacheStatus.VALID:
            return entry.rows
        return await self.fetcher.fetch(key.code, None if key.is_national else key.region)
