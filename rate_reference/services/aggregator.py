"""Median aggregation of CMS rows into one benchmark per code"""

import math
from typing import Iterable, List, Optional, Sequence

from rate_reference.schemas.rates import (
    AggregatedRate, CMS_SOURCE_LABEL, NATIONAL, NATIONAL_LABEL, RawRateRow
)


def median(values: Sequence[float]) -> float:
    """Median of values; 0 for an empty sequence"""
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return float(ordered[mid])
    return (ordered[mid - 1] + ordered[mid]) / 2


def usable_amounts(values: Iterable[Optional[float]]) -> List[float]:
    """Keep finite positive amounts"""
    return [v for v in values if v is not None and math.isfinite(v) and v > 0]


def region_label(region: Optional[str]) -> str:
    if not region or region.lower() == NATIONAL:
        return NATIONAL_LABEL
    return region.upper()


def aggregate_rates(rows: List[RawRateRow], code: str, region: Optional[str] = None) -> Optional[AggregatedRate]:
    """
    Summarize rows for one code.

    Each money series is filtered independently. Returns None when no row
    carries a usable allowed amount; submitted charge and payment medians
    fall back to 0 when their series are empty.
    """
    if not rows:
        return None

    allowed = usable_amounts(r.allowed_amount for r in rows)
    if not allowed:
        return None

    submitted = usable_amounts(r.submitted_charge for r in rows)
    payments = usable_amounts(r.payment_amount for r in rows)

    return AggregatedRate(
        hcpcs_code=code,
        description=rows[0].description or "",
        medicare_allowed_amt=round(median(allowed), 2),
        avg_submitted_charge=round(median(submitted), 2),
        medicare_payment_amt=round(median(payments), 2),
        sample_size=len(allowed),
        region=region_label(region),
        source=CMS_SOURCE_LABEL,
    )
