from pbr_switch.valuation.engine import (
    CLASS_B_PER_CLASS_A,
    ValuationEngine,
    book_value_per_share_class_a,
    classify_zone,
    compute_valuation,
    current_pbr,
    implied_price,
    zone_targets,
)

__all__ = [
    "CLASS_B_PER_CLASS_A",
    "ValuationEngine",
    "book_value_per_share_class_a",
    "classify_zone",
    "compute_valuation",
    "current_pbr",
    "implied_price",
    "zone_targets",
]
