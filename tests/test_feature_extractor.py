"""
Tests for raw observation -> feature vector extraction (feature_extractor).
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from backend_argus.ml.feature_extractor import (
    calculate_gini,
    encode_confidence,
    exp_decay,
    extract_compressed,
    extract_features,
    linear_norm,
    log_norm,
)
from backend_argus.ml.feature_vector import FEATURE_NAMES, SIGNED_FEATURE_INDICES


def _by_name(vector) -> dict[str, float]:
    return {name: float(v) for name, v in zip(FEATURE_NAMES, vector)}


def test_log_norm():
    assert log_norm(0, 8) == 0.0
    assert log_norm(-5, 8) == 0.0
    assert log_norm(99, 2) == pytest.approx(1.0)
    assert log_norm(10**12, 8) == 1.0
    assert log_norm(9, 4) == pytest.approx(0.25)


def test_linear_norm_and_decay():
    assert linear_norm(25, 50) == 0.5
    assert linear_norm(80, 50) == 1.0
    assert linear_norm(-3, 50) == 0.0
    assert exp_decay(0) == 1.0
    assert exp_decay(24) == pytest.approx(math.exp(-1))
    assert exp_decay(-10) == 1.0


def test_encode_confidence():
    assert encode_confidence("HIGH") == 1.0
    assert encode_confidence("medium") == 0.66
    assert encode_confidence("LOW") == 0.33
    assert encode_confidence(None) == 0.0
    assert encode_confidence("bogus") == 0.0


def test_gini_single_element_is_zero():
    """n <= 1 is defined as 0, even though one holder owns everything."""
    assert calculate_gini([100.0]) == 0.0
    assert calculate_gini([]) == 0.0


def test_gini_equal_and_unequal():
    assert calculate_gini([10, 10, 10, 10]) == pytest.approx(0.0)
    assert calculate_gini([0, 0, 0, 100]) == pytest.approx(0.75)
    assert calculate_gini([0, 0, 0]) == 0.0


def test_gini_bounds_random():
    rng = np.random.default_rng(3)
    for _ in range(50):
        values = rng.exponential(5.0, size=int(rng.integers(2, 40)))
        g = calculate_gini(values.tolist())
        assert 0.0 <= g <= 1.0


def test_empty_input_defaults():
    """Missing sections degrade to neutral defaults, never raise."""
    vec = extract_features({})
    assert vec.dtype == np.float32
    assert vec.shape == (29,)
    f = _by_name(vec)
    assert f["holders.gini_coefficient"] == 0.5
    assert f["bundle.detected"] == 0.0
    assert f["bundle.quality_score"] == 0.5
    assert f["trading.buy_ratio_24h"] == 0.5
    assert f["trading.buy_ratio_1h"] == 0.5
    assert f["trading.momentum"] == 0.0
    assert f["time.trading_recency"] == 0.5
    assert f["creator.identified"] == 0.0
    assert f["creator.rug_history"] == 0.0
    assert extract_features(None).shape == (29,)


def test_full_observation():
    raw = {
        "market": {"liquidity": 10_000, "volume_24h": 5_000, "market_cap": 0, "price_change_24h": 150},
        "holders": {
            "count": 99,
            "fresh_wallet_ratio": 0.4,
            "distribution": [
                {"percent": 40},
                {"percent": 15},
                {"percent": 20, "is_lp": True},
                {"percent": 5},
            ],
        },
        "security": {"mint_revoked": True, "freeze_revoked": False, "lp_locked_percent": 100},
        "bundle": {"detected": True, "count": 25, "control_percent": 30, "confidence": "HIGH", "quality_score": 20},
        "trading": {"buys_24h": 60, "sells_24h": 40, "buys_1h": 9, "sells_1h": 1},
        "token": {"age_hours": 24},
        "creator": {"rugged_tokens": 2, "current_holdings_percent": 12},
    }
    f = _by_name(extract_features(raw))

    assert f["market.liquidity_log"] == pytest.approx(math.log10(10_001) / 8, rel=1e-6)
    assert f["market.volume_to_liquidity"] == pytest.approx(0.5)
    assert f["market.market_cap_log"] == 0.0
    assert f["market.price_velocity"] == 1.0

    assert f["holders.count_log"] == pytest.approx(0.5)
    assert f["holders.whale_count"] == pytest.approx(0.2)  # LP wallet excluded
    assert f["holders.top_whale_percent"] == pytest.approx(0.4)
    assert f["holders.top10_concentration"] == pytest.approx(0.8)
    assert 0.0 < f["holders.gini_coefficient"] < 1.0
    assert f["holders.fresh_wallet_ratio"] == pytest.approx(0.4)

    assert f["security.mint_disabled"] == 1.0
    assert f["security.freeze_disabled"] == 0.0
    assert f["security.lp_locked"] == 1.0
    assert f["security.lp_burned"] == 1.0

    assert f["bundle.detected"] == 1.0
    assert f["bundle.count_norm"] == pytest.approx(0.5)
    assert f["bundle.control_percent"] == pytest.approx(0.3)
    assert f["bundle.confidence_score"] == 1.0
    assert f["bundle.quality_score"] == pytest.approx(0.2)

    assert f["trading.buy_ratio_24h"] == pytest.approx(0.6)
    assert f["trading.buy_ratio_1h"] == pytest.approx(0.9)
    assert f["trading.momentum"] == pytest.approx(0.3)
    assert f["trading.activity_level"] == pytest.approx(math.log10(101) / 4, rel=1e-6)

    assert f["time.age_decay"] == pytest.approx(math.exp(-1), rel=1e-6)
    assert f["time.trading_recency"] == 1.0

    assert f["creator.identified"] == 1.0
    assert f["creator.rug_history"] == pytest.approx(0.4)
    assert f["creator.holdings_percent"] == pytest.approx(0.12)


def test_summary_fields_without_distribution():
    raw = {"holders": {"count": 500, "top10_percent": 70, "top_whale_percent": 35, "whale_count": 3}}
    f = _by_name(extract_features(raw))
    assert f["holders.top10_concentration"] == pytest.approx(0.7)
    assert f["holders.top_whale_percent"] == pytest.approx(0.35)
    assert f["holders.whale_count"] == pytest.approx(0.3)
    assert f["holders.gini_coefficient"] == 0.5


def test_garbage_values_do_not_raise():
    raw = {
        "market": {"liquidity": "abc", "volume_24h": None, "price_change_24h": float("nan")},
        "holders": {"count": "many", "distribution": ["x", {"percent": "y"}]},
        "bundle": "not-a-dict",
        "trading": {"buys_24h": -5},
        "creator": None,
    }
    vec = extract_features(raw)
    assert vec.shape == (29,)
    assert np.all(np.isfinite(vec))


def test_value_ranges():
    raw = {
        "market": {"liquidity": 1e12, "volume_24h": 1e15, "market_cap": 1e20, "price_change_24h": -900},
        "trading": {"buys_24h": 1, "sells_24h": 99, "buys_1h": 50, "sells_1h": 0},
    }
    vec = extract_features(raw)
    for i, v in enumerate(vec):
        lo = -1.0 if i in SIGNED_FEATURE_INDICES else 0.0
        assert lo <= v <= 1.0


def test_extract_compressed_groups():
    features = extract_compressed({"bundle": {"detected": False}})
    assert features.bundle["detected"] == 0.0
    assert features.bundle["quality_score"] == 0.5
