"""Rate reference Pydantic schemas"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


NATIONAL = "national"
NATIONAL_LABEL = "National"
CMS_SOURCE_LABEL = "CMS Medicare Physician & Other Practitioners"


def _to_amount(value: Any) -> Optional[float]:
    """Coerce a dataset money value; None when it is missing or not numeric"""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            return float(value)
        return float(str(value).strip())
    except (ValueError, OverflowError):
        return None


class RawRateRow(BaseModel):
    """One provider/service row from the CMS dataset API"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    allowed_amount: Optional[float] = Field(None, alias="Avg_Mdcr_Alowd_Amt", description="Average Medicare allowed amount")
    submitted_charge: Optional[float] = Field(None, alias="Avg_Sbmtd_Chrg", description="Average submitted charge")
    payment_amount: Optional[float] = Field(None, alias="Avg_Mdcr_Pymt_Amt", description="Average Medicare payment amount")
    description: str = Field(default="", alias="HCPCS_Desc", description="HCPCS description")
    provider_state: Optional[str] = Field(None, alias="Rndrng_Prvdr_State_Abrvtn", description="Rendering provider state")

    @field_validator('allowed_amount', 'submitted_charge', 'payment_amount', mode='before')
    @classmethod
    def coerce_amount(cls, v):
        return _to_amount(v)

    @field_validator('description', mode='before')
    @classmethod
    def coerce_description(cls, v):
        return "" if v is None else str(v)

    @field_validator('provider_state', mode='before')
    @classmethod
    def coerce_state(cls, v):
        return None if v is None else str(v)


class AggregatedRate(BaseModel):
    """Median benchmark figures for one HCPCS/CPT code"""
    hcpcs_code: str = Field(..., description="HCPCS/CPT code")
    description: str = Field(default="", description="Code description from the first dataset row")
    medicare_allowed_amt: float = Field(..., description="Median Medicare allowed amount")
    avg_submitted_charge: float = Field(..., description="Median average submitted charge (0 when unavailable)")
    medicare_payment_amt: float = Field(..., description="Median Medicare payment amount (0 when unavailable)")
    sample_size: int = Field(..., ge=1, description="Rows contributing an allowed amount")
    region: str = Field(..., description="State code the figures came from, or National")
    source: str = Field(default=CMS_SOURCE_LABEL, description="Data source label")


class LookupRequest(BaseModel):
    """Request schema for a batch rate lookup"""
    codes: List[str] = Field(..., max_length=200, description="HCPCS/CPT codes")
    state: Optional[str] = Field(None, description="Two-letter state abbreviation")

    @field_validator('state')
    @classmethod
    def validate_state(cls, v):
        if v is None or not v.strip():
            return None
        v = v.strip().upper()
        if len(v) != 2 or not v.isalpha():
            raise ValueError('State must be a two-letter abbreviation')
        return v


class LookupResponse(BaseModel):
    """Response schema for a batch rate lookup"""
    rates: Dict[str, AggregatedRate] = Field(default_factory=dict, description="Rates keyed by code")
    requested: int = Field(..., description="Distinct codes requested")
    found: int = Field(..., description="Codes with benchmark data")
    reference: Optional[str] = Field(None, description="Formatted reference block, null when nothing found")
