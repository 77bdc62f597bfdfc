"""
Feature extractor for the Argus risk classifier.

Compresses raw token observations (market stats, holder distribution, security
flags, bundle detection, trading activity, creator history) into the fixed
29-float vector defined in feature_vector.

Normalization:
- Heavy-tailed quantities: log10(v + 1) / K, capped at 1 (K per quantity below).
- Bounded counts: linear ratio against a cap, clamped to 0-1.
- Boolean flags: 0/1.
- Age: exp(-age_hours / 24) -> 1.0 brand new, decays toward 0.
- Holder inequality: Gini coefficient over holder percentages.

Extraction never raises for partially-populated input: missing sections and
unparseable numbers degrade to neutral defaults (0, or 0.5 where "unknown" must
not read as either extreme).

Input dict sections (all optional):
    market:   liquidity, volume_24h, market_cap, price_change_24h
    holders:  count, top10_percent, top_whale_percent, whale_count,
              fresh_wallet_ratio, distribution=[{"percent", "is_lp"}, ...]
    security: mint_revoked, freeze_revoked, lp_locked_percent, lp_burned
    bundle:   detected, count, control_percent, confidence, quality_score (0-100)
    trading:  buys_24h, sells_24h, buys_1h, sells_1h
    token:    age_hours
    creator:  rugged_tokens, current_holdings_percent
"""

from __future__ import annotations

import math
from typing import Any, Iterable

import numpy as np

from backend_argus.argus_logging import get_logger
from backend_argus.ml.feature_vector import CompressedFeatures

logger = get_logger(__name__)

# Log-scale denominators: a realistic maximum maps near 1
LIQUIDITY_LOG_MAX = 8  # $100M
VOLUME_LOG_MAX = 8  # $100M
MCAP_LOG_MAX = 10  # $10B
HOLDER_LOG_MAX = 4  # 10,000 holders
ACTIVITY_LOG_MAX = 4  # 10,000 txns

# Caps for linear scaling
BUNDLE_COUNT_CAP = 50
WHALE_COUNT_CAP = 10
RUG_HISTORY_CAP = 5

AGE_DECAY_HOURS = 24.0

LP_LOCKED_THRESHOLD = 50.0  # % of LP locked to count as "locked"
WHALE_THRESHOLD = 10.0  # % of supply to count as a whale

UNKNOWN = 0.5

CONFIDENCE_ENCODING = {"HIGH": 1.0, "MEDIUM": 0.66, "LOW": 0.33}


def _safe_float(value: Any, default: float = 0.0) -> float:
    """Coerce to a finite float; return default on None, failure or NaN/inf."""
    if value is None:
        return default
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(out):
        return default
    return out


def _section(raw: dict[str, Any], name: str) -> dict[str, Any] | None:
    """Return raw[name] if it is a dict, else None."""
    value = raw.get(name)
    return value if isinstance(value, dict) else None


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def log_norm(value: float, max_log: float) -> float:
    """min(1, log10(value + 1) / max_log); 0 for non-positive values."""
    if value <= 0:
        return 0.0
    return min(1.0, math.log10(value + 1) / max_log)


def linear_norm(value: float, cap: float) -> float:
    """value / cap clamped to 0-1."""
    return _clamp(value / cap, 0.0, 1.0)


def exp_decay(hours: float, scale_hours: float = AGE_DECAY_HOURS) -> float:
    """exp(-hours / scale_hours); 1.0 at hour 0."""
    return math.exp(-max(0.0, hours) / scale_hours)


def encode_confidence(confidence: Any) -> float:
    """HIGH=1, MEDIUM=0.66, LOW=0.33, anything else 0."""
    return CONFIDENCE_ENCODING.get(str(confidence or "").strip().upper(), 0.0)


def calculate_gini(percents: Iterable[float]) -> float:
    """
    Gini coefficient of a holder distribution: 0 = equal, 1 = one holder has everything.

    Sorted ascending, G = 2*sum(i*x_i) / (n*sum(x_i)) - (n+1)/n with 1-based i,
    clamped to 0-1. Returns 0 when n <= 1 or the mean is 0.
    """
    values = sorted(_safe_float(p) for p in percents)
    n = len(values)
    if n <= 1:
        return 0.0
    total = sum(values)
    if total / n == 0:
        return 0.0
    sum_ix = sum((i + 1) * x for i, x in enumerate(values))
    gini = (2 * sum_ix) / (n * total) - (n + 1) / n
    return _clamp(gini, 0.0, 1.0)


def _distribution(holders: dict[str, Any]) -> list[dict[str, Any]]:
    raw = holders.get("distribution")
    if not isinstance(raw, (list, tuple)):
        return []
    return [h for h in raw if isinstance(h, dict)]


def _extract_market(market: dict[str, Any]) -> dict[str, float]:
    liquidity = _safe_float(market.get("liquidity"))
    volume = _safe_float(market.get("volume_24h"))
    return {
        "liquidity_log": log_norm(liquidity, LIQUIDITY_LOG_MAX),
        "volume_to_liquidity": min(1.0, max(0.0, volume) / liquidity) if liquidity > 0 else 0.0,
        "market_cap_log": log_norm(_safe_float(market.get("market_cap")), MCAP_LOG_MAX),
        "price_velocity": _clamp(_safe_float(market.get("price_change_24h")) / 100.0, -1.0, 1.0),
        "volume_log": log_norm(volume, VOLUME_LOG_MAX),
    }


def _extract_holders(holders: dict[str, Any]) -> dict[str, float]:
    distribution = _distribution(holders)
    percents = [_safe_float(h.get("percent")) for h in distribution]

    if distribution:
        gini = calculate_gini(percents)
        whales = [
            _safe_float(h.get("percent"))
            for h in distribution
            if _safe_float(h.get("percent")) > WHALE_THRESHOLD and not h.get("is_lp")
        ]
        whale_count = float(len(whales))
        top_whale = max(whales) if whales else 0.0
        top10 = sum(sorted(percents, reverse=True)[:10])
    else:
        gini = UNKNOWN
        whale_count = _safe_float(holders.get("whale_count"))
        top_whale = _safe_float(holders.get("top_whale_percent"))
        top10 = _safe_float(holders.get("top10_percent"))

    if holders.get("top10_percent") is not None:
        top10 = _safe_float(holders.get("top10_percent"), top10)
    if holders.get("top_whale_percent") is not None:
        top_whale = _safe_float(holders.get("top_whale_percent"), top_whale)

    count = _safe_float(holders.get("count"), float(len(distribution)))
    return {
        "count_log": log_norm(count, HOLDER_LOG_MAX),
        "top10_concentration": _clamp(top10 / 100.0, 0.0, 1.0),
        "gini_coefficient": gini,
        "fresh_wallet_ratio": _clamp(_safe_float(holders.get("fresh_wallet_ratio")), 0.0, 1.0),
        "whale_count": linear_norm(whale_count, WHALE_COUNT_CAP),
        "top_whale_percent": _clamp(top_whale / 100.0, 0.0, 1.0),
    }


def _extract_security(security: dict[str, Any]) -> dict[str, float]:
    lp_locked_pct = _safe_float(security.get("lp_locked_percent"))
    lp_burned = security.get("lp_burned")
    if lp_burned is None:
        lp_burned = lp_locked_pct >= 100
    return {
        "mint_disabled": 1.0 if security.get("mint_revoked") else 0.0,
        "freeze_disabled": 1.0 if security.get("freeze_revoked") else 0.0,
        "lp_locked": 1.0 if lp_locked_pct >= LP_LOCKED_THRESHOLD else 0.0,
        "lp_burned": 1.0 if lp_burned else 0.0,
    }


def _extract_bundle(bundle: dict[str, Any] | None) -> dict[str, float]:
    if bundle is None:
        return {
            "detected": 0.0,
            "count_norm": 0.0,
            "control_percent": 0.0,
            "confidence_score": 0.0,
            "quality_score": UNKNOWN,
        }
    quality = bundle.get("quality_score")
    return {
        "detected": 1.0 if bundle.get("detected") else 0.0,
        "count_norm": linear_norm(_safe_float(bundle.get("count")), BUNDLE_COUNT_CAP),
        "control_percent": _clamp(_safe_float(bundle.get("control_percent")) / 100.0, 0.0, 1.0),
        "confidence_score": encode_confidence(bundle.get("confidence")),
        "quality_score": UNKNOWN if quality is None else _clamp(_safe_float(quality, 50.0) / 100.0, 0.0, 1.0),
    }


def _extract_trading(trading: dict[str, Any]) -> tuple[dict[str, float], float]:
    buys_24h = max(0.0, _safe_float(trading.get("buys_24h")))
    sells_24h = max(0.0, _safe_float(trading.get("sells_24h")))
    buys_1h = max(0.0, _safe_float(trading.get("buys_1h")))
    sells_1h = max(0.0, _safe_float(trading.get("sells_1h")))
    total_24h = buys_24h + sells_24h
    total_1h = buys_1h + sells_1h
    ratio_24h = buys_24h / total_24h if total_24h > 0 else UNKNOWN
    ratio_1h = buys_1h / total_1h if total_1h > 0 else UNKNOWN
    momentum = ratio_1h - ratio_24h if total_24h > 0 and total_1h > 0 else 0.0
    return (
        {
            "buy_ratio_24h": ratio_24h,
            "buy_ratio_1h": ratio_1h,
            "activity_level": log_norm(total_24h, ACTIVITY_LOG_MAX),
            "momentum": _clamp(momentum, -1.0, 1.0),
        },
        total_1h,
    )


def _extract_creator(creator: dict[str, Any] | None) -> dict[str, float]:
    if creator is None:
        return {"identified": 0.0, "rug_history": 0.0, "holdings_percent": 0.0}
    return {
        "identified": 1.0,
        "rug_history": linear_norm(_safe_float(creator.get("rugged_tokens")), RUG_HISTORY_CAP),
        "holdings_percent": _clamp(_safe_float(creator.get("current_holdings_percent")) / 100.0, 0.0, 1.0),
    }


def extract_compressed(raw: dict[str, Any] | None) -> CompressedFeatures:
    """Build CompressedFeatures from raw observations. Never raises on partial input."""
    raw = raw if isinstance(raw, dict) else {}
    trading, total_1h = _extract_trading(_section(raw, "trading") or {})
    token = _section(raw, "token") or {}
    features = CompressedFeatures(
        market=_extract_market(_section(raw, "market") or {}),
        holders=_extract_holders(_section(raw, "holders") or {}),
        security=_extract_security(_section(raw, "security") or {}),
        bundle=_extract_bundle(_section(raw, "bundle")),
        trading=trading,
        time={
            "age_decay": exp_decay(_safe_float(token.get("age_hours"))),
            "trading_recency": 1.0 if total_1h > 0 else UNKNOWN,
        },
        creator=_extract_creator(_section(raw, "creator")),
    )
    logger.debug("feature_extractor_summary", summary=features.summary())
    return features


def extract_features(raw: dict[str, Any] | None) -> np.ndarray:
    """
    Build the normalized feature vector from raw observations.

    Returns 1D numpy array of shape (29,) float32.
    """
    return extract_compressed(raw).to_vector()
