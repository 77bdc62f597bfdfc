"""
Fixed-order 29-float feature vector shared by the extractor, the rule-based
scorer and any trained model.

The index -> meaning mapping is a contract: reordering FEATURE_ORDER silently
breaks every previously trained artifact. Artifacts may embed featureNames so
the loader can detect a mismatch by name (see model_loader).

Vector policy: anything that is not exactly FEATURE_COUNT finite numbers is
rejected with FeatureDimensionError. Nothing pads or truncates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from backend_argus.core.exceptions import FeatureDimensionError

CATEGORY_SIZES: tuple[tuple[str, int], ...] = (
    ("market", 5),
    ("holders", 6),
    ("security", 4),
    ("bundle", 5),
    ("trading", 4),
    ("time", 2),
    ("creator", 3),
)
CATEGORIES: tuple[str, ...] = tuple(name for name, _ in CATEGORY_SIZES)

FEATURE_ORDER: tuple[tuple[str, str], ...] = (
    # Market (5)
    ("market", "liquidity_log"),
    ("market", "volume_to_liquidity"),
    ("market", "market_cap_log"),
    ("market", "price_velocity"),
    ("market", "volume_log"),
    # Holders (6)
    ("holders", "count_log"),
    ("holders", "top10_concentration"),
    ("holders", "gini_coefficient"),
    ("holders", "fresh_wallet_ratio"),
    ("holders", "whale_count"),
    ("holders", "top_whale_percent"),
    # Security (4)
    ("security", "mint_disabled"),
    ("security", "freeze_disabled"),
    ("security", "lp_locked"),
    ("security", "lp_burned"),
    # Bundle (5)
    ("bundle", "detected"),
    ("bundle", "count_norm"),
    ("bundle", "control_percent"),
    ("bundle", "confidence_score"),
    ("bundle", "quality_score"),
    # Trading (4)
    ("trading", "buy_ratio_24h"),
    ("trading", "buy_ratio_1h"),
    ("trading", "activity_level"),
    ("trading", "momentum"),
    # Time (2)
    ("time", "age_decay"),
    ("time", "trading_recency"),
    # Creator (3)
    ("creator", "identified"),
    ("creator", "rug_history"),
    ("creator", "holdings_percent"),
)

FEATURE_COUNT = len(FEATURE_ORDER)  # 29
FEATURE_NAMES: tuple[str, ...] = tuple(f"{cat}.{name}" for cat, name in FEATURE_ORDER)
BYTES_PER_FEATURE = 4  # float32

# Index constants used by the scorers
IDX_LIQUIDITY_LOG = 0
IDX_VOLUME_TO_LIQUIDITY = 1
IDX_PRICE_VELOCITY = 3
IDX_HOLDER_COUNT_LOG = 5
IDX_TOP10_CONCENTRATION = 6
IDX_GINI = 7
IDX_FRESH_WALLET_RATIO = 8
IDX_TOP_WHALE_PERCENT = 10
IDX_MINT_DISABLED = 11
IDX_FREEZE_DISABLED = 12
IDX_BUNDLE_DETECTED = 15
IDX_BUNDLE_COUNT = 16
IDX_BUNDLE_CONFIDENCE = 18
IDX_BUNDLE_QUALITY = 19
IDX_ACTIVITY_LEVEL = 22
IDX_MOMENTUM = 23
IDX_AGE_DECAY = 24
IDX_CREATOR_RUG_HISTORY = 27

SIGNED_FEATURE_INDICES = frozenset({IDX_PRICE_VELOCITY, IDX_MOMENTUM})


def _category_ranges() -> dict[str, range]:
    ranges: dict[str, range] = {}
    start = 0
    for name, size in CATEGORY_SIZES:
        ranges[name] = range(start, start + size)
        start += size
    return ranges


CATEGORY_RANGES: dict[str, range] = _category_ranges()


def get_feature_names() -> list[str]:
    """Return feature names in vector order."""
    return list(FEATURE_NAMES)


def validate_vector(vector: Sequence[float] | np.ndarray) -> np.ndarray:
    """
    Return vector as a 1D float32 array of length FEATURE_COUNT.

    Raises FeatureDimensionError for wrong shape/length or non-finite values.
    """
    try:
        arr = np.asarray(vector, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise FeatureDimensionError(f"feature vector is not numeric: {e}") from e
    if arr.ndim != 1:
        raise FeatureDimensionError(
            f"feature vector must be 1D, got shape {arr.shape}",
            expected=FEATURE_COUNT,
        )
    if arr.shape[0] != FEATURE_COUNT:
        raise FeatureDimensionError(
            f"feature vector must have {FEATURE_COUNT} values, got {arr.shape[0]}",
            expected=FEATURE_COUNT,
            actual=int(arr.shape[0]),
        )
    if not np.all(np.isfinite(arr)):
        raise FeatureDimensionError("feature vector contains NaN or infinite values", expected=FEATURE_COUNT)
    return arr


@dataclass
class CompressedFeatures:
    """The 29 scalars grouped into the 7 named categories (debugging and category importance)."""

    market: dict[str, float]
    holders: dict[str, float]
    security: dict[str, float]
    bundle: dict[str, float]
    trading: dict[str, float]
    time: dict[str, float]
    creator: dict[str, float]

    def to_vector(self) -> np.ndarray:
        """Return float32 vector in FEATURE_ORDER."""
        values = [float(getattr(self, cat).get(name, 0.0)) for cat, name in FEATURE_ORDER]
        return np.asarray(values, dtype=np.float32)

    @classmethod
    def from_vector(cls, vector: Sequence[float] | np.ndarray) -> "CompressedFeatures":
        arr = validate_vector(vector)
        groups: dict[str, dict[str, float]] = {cat: {} for cat in CATEGORIES}
        for i, (cat, name) in enumerate(FEATURE_ORDER):
            groups[cat][name] = float(arr[i])
        return cls(**groups)

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {cat: dict(getattr(self, cat)) for cat in CATEGORIES}

    def summary(self) -> str:
        """One-line human-readable summary for debug logs."""
        parts = [
            f"Market: liq={self.market['liquidity_log'] * 100:.0f}%, "
            f"vol/liq={self.market['volume_to_liquidity'] * 100:.0f}%",
            f"Holders: top10={self.holders['top10_concentration'] * 100:.0f}%, "
            f"gini={self.holders['gini_coefficient']:.2f}",
        ]
        sec = []
        if self.security["mint_disabled"]:
            sec.append("mint-off")
        if self.security["freeze_disabled"]:
            sec.append("freeze-off")
        if self.security["lp_locked"]:
            sec.append("lp-locked")
        parts.append(f"Security: {', '.join(sec) if sec else 'none'}")
        if self.bundle["detected"]:
            parts.append(
                f"Bundle: {self.bundle['count_norm'] * 50:.0f} wallets, "
                f"{self.bundle['control_percent'] * 100:.0f}% control"
            )
        decay = self.time["age_decay"]
        parts.append(f"Age: {'old' if decay < 0.5 else 'new'} (decay={decay:.2f})")
        return " | ".join(parts)


def quantize_to_int8(vector: Sequence[float] | np.ndarray) -> np.ndarray:
    """
    Compress a vector to int8 (29 bytes).

    Signed features map [-1, 1] -> v*127; unsigned map [0, 1] -> v*254 - 127.
    """
    arr = validate_vector(vector).astype(np.float64)
    out = np.empty(FEATURE_COUNT, dtype=np.int8)
    for i in range(FEATURE_COUNT):
        if i in SIGNED_FEATURE_INDICES:
            q = round(arr[i] * 127)
        else:
            q = round(arr[i] * 254 - 127)
        out[i] = max(-127, min(127, q))
    return out


def dequantize_from_int8(quantized: Sequence[int] | np.ndarray) -> np.ndarray:
    """Inverse of quantize_to_int8 (lossy)."""
    q = np.asarray(quantized, dtype=np.float64)
    if q.shape != (FEATURE_COUNT,):
        raise FeatureDimensionError(
            f"quantized vector must have {FEATURE_COUNT} values, got {q.size}",
            expected=FEATURE_COUNT,
            actual=int(q.size),
        )
    out = np.empty(FEATURE_COUNT, dtype=np.float32)
    for i in range(FEATURE_COUNT):
        if i in SIGNED_FEATURE_INDICES:
            out[i] = q[i] / 127.0
        else:
            out[i] = (q[i] + 127.0) / 254.0
    return out


def memory_footprint() -> dict[str, Any]:
    """Bytes per vector as float32 and as int8."""
    return {"float32": FEATURE_COUNT * BYTES_PER_FEATURE, "int8": FEATURE_COUNT}
