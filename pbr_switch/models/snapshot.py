from pydantic import BaseModel, Field


class FinancialSnapshot(BaseModel):
    """Latest balance-sheet inputs and market price, replaced wholesale on refresh."""

    model_config = {"from_attributes": True, "frozen": True}

    total_equity_millions: float
    total_shares_class_a_equivalent: float
    current_price: float
    as_of: str
    source_url: str | None = None
    is_fallback: bool = False


class PbrDistributionBucket(BaseModel):
    model_config = {"from_attributes": True, "frozen": True}

    range_label: str
    percentage_of_time: float = Field(ge=0.0, le=100.0)


def distribution_total(buckets: list[PbrDistributionBucket]) -> float:
    return sum(b.percentage_of_time for b in buckets)
