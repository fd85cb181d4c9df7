"""
Valuation Engine - PBR-based fair value ladder and zone classification.
"""
import math
from typing import Iterable

from loguru import logger

from pbr_switch.models import (
    FinancialSnapshot,
    PriceTarget,
    Valuation,
    Zone,
    ZonedTarget,
    ZoneThresholds,
)

# Legal conversion ratio: one Class A share equals 1500 Class B shares.
CLASS_B_PER_CLASS_A = 1500


def _ratio(numerator: float, denominator: float) -> float:
    # IEEE semantics for a zero denominator; callers guard against it.
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def book_value_per_share_class_a(snapshot: FinancialSnapshot) -> float:
    return _ratio(snapshot.total_equity_millions * 1_000_000, snapshot.total_shares_class_a_equivalent)


def compute_valuation(snapshot: FinancialSnapshot, multipliers: Iterable[float]) -> Valuation:
    """
    Derive book value per share and one implied price per PBR multiplier.

    Args:
        snapshot: Fetched financial inputs (share count must be positive)
        multipliers: PBR multipliers, in the order the table should show them

    Returns:
        Valuation with exactly one PriceTarget per multiplier
    """
    bvps_a = book_value_per_share_class_a(snapshot)
    bvps_b = bvps_a / CLASS_B_PER_CLASS_A

    return Valuation(
        book_value_per_share_class_a=bvps_a,
        book_value_per_share_class_b=bvps_b,
        price_targets=[PriceTarget(multiplier=m, price=bvps_b * m) for m in multipliers],
    )


def current_pbr(snapshot: FinancialSnapshot, valuation: Valuation) -> float:
    return _ratio(snapshot.current_price, valuation.book_value_per_share_class_b)


def implied_price(valuation: Valuation, multiplier: float) -> float:
    return valuation.book_value_per_share_class_b * multiplier


def classify_zone(pbr: float, thresholds: ZoneThresholds) -> Zone:
    """
    Map a PBR to its action zone.

    pbr <= buy -> BUY, buy < pbr < rotate -> HOLD, everything else -> ROTATE
    (including nan, which compares false against both thresholds).
    """
    if pbr <= thresholds.buy_at_or_below:
        return Zone.BUY
    if pbr < thresholds.rotate_at_or_above:
        return Zone.HOLD
    return Zone.ROTATE


def zone_targets(valuation: Valuation, thresholds: ZoneThresholds) -> list[ZonedTarget]:
    boundaries = {thresholds.buy_at_or_below, thresholds.rotate_at_or_above}
    return [
        ZonedTarget(
            multiplier=t.multiplier,
            price=t.price,
            zone=classify_zone(t.multiplier, thresholds),
            is_boundary=t.multiplier in boundaries,
        )
        for t in valuation.price_targets
    ]


class ValuationEngine:
    """
    Configured valuation component.

    Thresholds and the multiplier ladder are configuration; nothing here is
    fitted or derived from data.
    """

    def __init__(self, thresholds: ZoneThresholds, multipliers: Iterable[float]):
        self.thresholds = thresholds
        self.multipliers = list(multipliers)

        logger.debug(
            f"ValuationEngine initialized: buy <= {thresholds.buy_at_or_below}, "
            f"rotate >= {thresholds.rotate_at_or_above}, {len(self.multipliers)} multipliers"
        )

    @classmethod
    def from_settings(cls, strategy_settings) -> "ValuationEngine":
        thresholds = ZoneThresholds(
            buy_at_or_below=strategy_settings.buy_threshold,
            rotate_at_or_above=strategy_settings.sell_threshold,
        )
        return cls(thresholds=thresholds, multipliers=strategy_settings.multipliers)

    def value(self, snapshot: FinancialSnapshot) -> Valuation:
        return compute_valuation(snapshot, self.multipliers)

    def current_pbr(self, snapshot: FinancialSnapshot, valuation: Valuation | None = None) -> float:
        valuation = valuation or self.value(snapshot)
        return current_pbr(snapshot, valuation)

    def classify(self, pbr: float) -> Zone:
        return classify_zone(pbr, self.thresholds)

    def zone_targets(self, valuation: Valuation) -> list[ZonedTarget]:
        return zone_targets(valuation, self.thresholds)
