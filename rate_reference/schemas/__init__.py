"""Pydantic schemas for rate lookups"""

from .rates import (
    RawRateRow, AggregatedRate, LookupRequest, LookupResponse,
    NATIONAL, NATIONAL_LABEL, CMS_SOURCE_LABEL
)

__all__ = [
    "RawRateRow", "AggregatedRate", "LookupRequest", "LookupResponse",
    "NATIONAL", "NATIONAL_LABEL", "CMS_SOURCE_LABEL",
]
