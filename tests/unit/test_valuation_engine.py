import math

import pytest

from pbr_switch.models import FinancialSnapshot, Zone, ZoneThresholds
from pbr_switch.valuation import (
    CLASS_B_PER_CLASS_A,
    ValuationEngine,
    classify_zone,
    compute_valuation,
    current_pbr,
    implied_price,
    zone_targets,
)

MULTIPLIERS = [1.0, 1.2, 1.3, 1.4, 1.45, 1.5, 1.55, 1.6, 1.7, 1.8]


@pytest.fixture
def thresholds() -> ZoneThresholds:
    return ZoneThresholds(buy_at_or_below=1.45, rotate_at_or_above=1.55)


def test_reference_example(brk_snapshot) -> None:
    valuation = compute_valuation(brk_snapshot, MULTIPLIERS)

    assert valuation.book_value_per_share_class_a == pytest.approx(451507.17, abs=0.01)
    assert valuation.book_value_per_share_class_b == pytest.approx(301.0048, abs=1e-4)
    assert current_pbr(brk_snapshot, valuation) == pytest.approx(1.5614, abs=1e-4)


@pytest.mark.parametrize(
    "equity,shares",
    [(649368, 1438223), (1.0, 3.0), (123456.789, 98765.4321), (5e6, 7)],
)
def test_class_b_book_value_formula_is_exact(equity, shares) -> None:
    snapshot = FinancialSnapshot(
        total_equity_millions=equity,
        total_shares_class_a_equivalent=shares,
        current_price=100,
        as_of="2025-01-01",
    )
    valuation = compute_valuation(snapshot, [])
    assert valuation.book_value_per_share_class_b == (equity * 1e6 / shares) / 1500


def test_one_target_per_multiplier_in_order(brk_snapshot) -> None:
    valuation = compute_valuation(brk_snapshot, MULTIPLIERS)

    assert [t.multiplier for t in valuation.price_targets] == MULTIPLIERS
    prices = [t.price for t in valuation.price_targets]
    assert prices == sorted(prices)
    assert all(a < b for a, b in zip(prices, prices[1:]))


def test_target_price_is_bvps_times_multiplier(brk_snapshot) -> None:
    valuation = compute_valuation(brk_snapshot, [1.45])
    assert valuation.price_targets[0].price == valuation.book_value_per_share_class_b * 1.45
    assert implied_price(valuation, 1.45) == valuation.price_targets[0].price


def test_class_ratio_constant() -> None:
    assert CLASS_B_PER_CLASS_A == 1500


def test_zero_shares_yields_non_finite() -> None:
    snapshot = FinancialSnapshot(
        total_equity_millions=649368,
        total_shares_class_a_equivalent=0,
        current_price=470,
        as_of="2025-01-01",
    )
    valuation = compute_valuation(snapshot, [1.0])

    assert math.isinf(valuation.book_value_per_share_class_b)
    assert current_pbr(snapshot, valuation) == 0.0


def test_zero_equity_and_zero_shares_is_nan() -> None:
    snapshot = FinancialSnapshot(
        total_equity_millions=0,
        total_shares_class_a_equivalent=0,
        current_price=470,
        as_of="2025-01-01",
    )
    assert math.isnan(compute_valuation(snapshot, []).book_value_per_share_class_a)


@pytest.mark.parametrize(
    "pbr,expected",
    [
        (0.0, Zone.BUY),
        (1.2, Zone.BUY),
        (1.45, Zone.BUY),
        (1.4500001, Zone.HOLD),
        (1.5, Zone.HOLD),
        (1.5499999, Zone.HOLD),
        (1.55, Zone.ROTATE),
        (1.5614, Zone.ROTATE),
        (5.0, Zone.ROTATE),
        (-1.0, Zone.BUY),
        (math.inf, Zone.ROTATE),
        (-math.inf, Zone.BUY),
    ],
)
def test_classify_zone(pbr, expected, thresholds) -> None:
    assert classify_zone(pbr, thresholds) == expected


def test_zones_are_contiguous(thresholds) -> None:
    # Sweep across both boundaries; zone order must be BUY -> HOLD -> ROTATE with no gaps.
    zones = [classify_zone(1.0 + i * 0.001, thresholds) for i in range(1001)]
    transitions = [zones[0]] + [b for a, b in zip(zones, zones[1:]) if a != b]
    assert transitions == [Zone.BUY, Zone.HOLD, Zone.ROTATE]


@pytest.mark.parametrize("buy,rotate", [(1.45, 1.55), (1.47, 1.52), (1.52, 1.57)])
def test_thresholds_are_configuration(buy, rotate) -> None:
    t = ZoneThresholds(buy_at_or_below=buy, rotate_at_or_above=rotate)
    assert classify_zone(buy, t) == Zone.BUY
    assert classify_zone((buy + rotate) / 2, t) == Zone.HOLD
    assert classify_zone(rotate, t) == Zone.ROTATE


def test_zone_targets_mark_boundaries(brk_snapshot, thresholds) -> None:
    valuation = compute_valuation(brk_snapshot, MULTIPLIERS)
    rows = zone_targets(valuation, thresholds)

    by_multiplier = {r.multiplier: r for r in rows}
    assert by_multiplier[1.4].zone == Zone.BUY
    assert by_multiplier[1.45].zone == Zone.BUY
    assert by_multiplier[1.5].zone == Zone.HOLD
    assert by_multiplier[1.55].zone == Zone.ROTATE
    assert by_multiplier[1.8].zone == Zone.ROTATE
    assert [r.multiplier for r in rows if r.is_boundary] == [1.45, 1.55]


def test_engine_from_settings(brk_snapshot) -> None:
    class StrategyStub:
        buy_threshold = 1.47
        sell_threshold = 1.52
        multipliers = [1.0, 1.5]

    engine = ValuationEngine.from_settings(StrategyStub)
    valuation = engine.value(brk_snapshot)

    assert engine.thresholds.buy_at_or_below == 1.47
    assert len(valuation.price_targets) == 2
    assert engine.classify(engine.current_pbr(brk_snapshot)) == Zone.ROTATE
    assert len(engine.zone_targets(valuation)) == 2
