"""Core domain models for listings, subscriptions and delivery jobs.

- RawListing: one entry of the upstream feed, before derivation
- Listing: normalized, immutable listing with derived id/region/flag
- FilterCondition: a subscriber's optional-field match criteria
- SubscriptionRecord / Subscription: stored vs. parsed subscriber config
- DeliveryJob: unit of work handed from the notify cycle to the worker
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Region assigned when no city/county can be parsed from the address.
# Never a real region name, and never accepted by a region allow-list.
UNKNOWN_REGION = "未知"


class RawListing(BaseModel):
    """Raw listing fields as published by the feed.

    The feed is loosely typed (rank bounds arrive as numbers, missing text as
    null), so every field is coerced to a string, with null becoming "".
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    org_name: str = Field("", description="Hiring organization")
    work_addr: str = Field("", description="Work address")
    title: str = Field("", description="Position title")
    job_type: str = Field("", description="Job-type code (官等)")
    rank_from: str = Field("", description="Lowest rank of the range")
    rank_to: str = Field("", description="Highest rank of the range")
    date_from: str = Field("", description="Application window start")
    date_to: str = Field("", description="Application window end")
    view_url: str = Field(..., min_length=1, description="Detail page URL")
    work_quality: str = Field("", description="Eligibility / qualification text")
    sysnam: str = Field("", description="Job-family code (職系)")
    work_item: str = Field("", description="Duties description")

    @field_validator(
        "org_name", "work_addr", "title", "job_type", "rank_from", "rank_to",
        "date_from", "date_to", "view_url", "work_quality", "sysnam", "work_item",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()


class Listing(RawListing):
    """Normalized listing. Derived fields are computed once at ingestion."""

    id: str = Field(..., min_length=1, description="Stable id taken from the detail URL")
    region: str = Field(..., min_length=1, description="City/county, or UNKNOWN_REGION")
    requires_accessibility_certificate: bool = Field(
        ..., description="Whether applicants must hold a disability certificate"
    )


class FilterCondition(BaseModel):
    """Optional-field filter. An absent field places no constraint.

    Stored conditions use the legacy camelCase keys (``jobType``, ``citys``,
    ``isDisability``, ``sysnams``); both those and the field names are accepted.
    Empty strings and empty lists are treated as absent.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    job_type: Optional[str] = Field(None, alias="jobType")
    regions: Optional[List[str]] = Field(None, alias="citys")
    requires_accessibility: Optional[bool] = Field(None, alias="isDisability")
    job_families: Optional[List[str]] = Field(None, alias="sysnams")

    @field_validator("job_type")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("regions", "job_families")
    @classmethod
    def empty_list_to_none(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        cleaned = [item.strip() for item in v if item and item.strip()]
        return cleaned or None

    def is_unconstrained(self) -> bool:
        return (
            self.job_type is None
            and self.regions is None
            and self.requires_accessibility is None
            and self.job_families is None
        )

    def to_storage(self) -> dict:
        """Serialize using the legacy keys, omitting absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SubscriptionRecord(BaseModel):
    """A subscription as stored: the condition is still unparsed JSON text."""

    id: str
    credential: str
    condition_json: str


class Subscription(BaseModel):
    """A parsed subscription, ready for matching."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    credential: str = Field(..., min_length=1, description="Notify-channel access token")
    condition: FilterCondition = Field(default_factory=FilterCondition)


class DeliveryJob(BaseModel):
    """Per-subscription delivery unit for one notify cycle.

    Carries the full matched set (not truncated) so the summary can report the
    true count, plus a snapshot of the condition and credential at enqueue time.
    """

    subscription_id: str = Field(..., min_length=1)
    credential: str = Field(..., min_length=1)
    condition: FilterCondition = Field(default_factory=FilterCondition)
    matched_listings: List[Listing] = Field(..., min_length=1)
    cycle_id: Optional[str] = None
