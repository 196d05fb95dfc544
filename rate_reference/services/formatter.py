"""Text rendering of lookup results for prompt embedding"""

from typing import Mapping, Optional

from rate_reference.schemas.rates import AggregatedRate

REFERENCE_HEADER = "MEDICARE REFERENCE DATA (from CMS Medicare Physician Fee Schedule):"

REFERENCE_GUIDANCE = (
    "Use these actual Medicare rates as your primary benchmark for fairPriceEstimate. "
    "The Medicare allowed amount represents what CMS has determined is a fair reimbursement. "
    "Fair price should be at or near the Medicare allowed amount. "
    "Flag any billed amount exceeding 2x the average submitted charge as a potential overcharge."
)


def format_rate_line(rate: AggregatedRate) -> str:
    return (
        f"- CPT {rate.hcpcs_code} ({rate.description}): "
        f"Medicare allowed ${rate.medicare_allowed_amt:.2f}, "
        f"avg submitted ${rate.avg_submitted_charge:.2f} "
        f"({rate.region}, n={rate.sample_size})"
    )


def format_reference_block(result: Optional[Mapping[str, AggregatedRate]]) -> Optional[str]:
    """Render rates as a reference block; None when there is nothing to show"""
    if not result:
        return None

    lines = [format_rate_line(rate) for rate in result.values()]
    return f"{REFERENCE_HEADER}\n" + "\n".join(lines) + f"\n\n{REFERENCE_GUIDANCE}"
