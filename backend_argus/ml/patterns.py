"""
Known-behavior pattern matching against fixed signed-weight templates.

similarity = (sum(w_i * x_i) + sum|w_i|) / (2 * sum|w_i|) over non-zero weights,
so 1 needs w.x == sum|w| (x_i = sign(w_i) for every weighted feature).
With features in [0, 1], negative weights contribute at most 0, so a template
with negative weights tops out below 1. Matches above MATCH_THRESHOLD are
returned strongest first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from backend_argus.ml.feature_vector import (
    FEATURE_COUNT,
    IDX_ACTIVITY_LEVEL,
    IDX_AGE_DECAY,
    IDX_BUNDLE_COUNT,
    IDX_BUNDLE_DETECTED,
    IDX_BUNDLE_QUALITY,
    IDX_CREATOR_RUG_HISTORY,
    IDX_FREEZE_DISABLED,
    IDX_FRESH_WALLET_RATIO,
    IDX_HOLDER_COUNT_LOG,
    IDX_MINT_DISABLED,
    IDX_TOP_WHALE_PERCENT,
    IDX_VOLUME_TO_LIQUIDITY,
    validate_vector,
)

MATCH_THRESHOLD = 0.7

# Sparse templates: feature index -> signed weight (negative = low value expected)
PATTERN_TEMPLATES: dict[str, dict[int, float]] = {
    "BUNDLE_COORDINATOR": {
        IDX_BUNDLE_DETECTED: 1.0,
        IDX_BUNDLE_COUNT: 0.8,
        IDX_FRESH_WALLET_RATIO: 0.7,
        IDX_BUNDLE_QUALITY: -0.5,
    },
    "RUG_PULLER": {
        IDX_CREATOR_RUG_HISTORY: 1.0,
        IDX_TOP_WHALE_PERCENT: 0.8,
        IDX_MINT_DISABLED: -0.5,
        IDX_FREEZE_DISABLED: -0.7,
    },
    "WASH_TRADER": {
        IDX_VOLUME_TO_LIQUIDITY: 1.0,
        IDX_HOLDER_COUNT_LOG: -0.5,
        IDX_ACTIVITY_LEVEL: 0.6,
    },
    "LEGITIMATE_VC": {
        IDX_BUNDLE_QUALITY: 1.0,
        IDX_AGE_DECAY: -0.5,
        IDX_CREATOR_RUG_HISTORY: -1.0,
        IDX_MINT_DISABLED: 0.8,
        IDX_FREEZE_DISABLED: 0.8,
    },
}

PATTERN_DESCRIPTIONS = {
    "BUNDLE_COORDINATOR": "Wallet coordinates bundle buys across multiple fresh wallets",
    "RUG_PULLER": "Creator has history of rug pulls, controls large supply",
    "WASH_TRADER": "Self-trading to inflate volume artificially",
    "LEGITIMATE_VC": "Pattern consistent with legitimate VC investment round",
}


@dataclass(frozen=True)
class PatternMatch:
    pattern: str
    similarity: float
    description: str

    def to_dict(self) -> dict[str, object]:
        return {"pattern": self.pattern, "similarity": round(self.similarity, 4), "description": self.description}


def _dense_template(template: Mapping[int, float]) -> np.ndarray:
    w = np.zeros(FEATURE_COUNT, dtype=np.float64)
    for idx, weight in template.items():
        w[idx] = weight
    return w


_TEMPLATE_VECTORS = {name: _dense_template(t) for name, t in PATTERN_TEMPLATES.items()}


def pattern_similarity(vector: Sequence[float] | np.ndarray, weights: np.ndarray) -> float:
    x = validate_vector(vector).astype(np.float64)
    max_score = float(np.abs(weights).sum())
    if max_score <= 0:
        return 0.0
    score = float(np.dot(weights, x))
    return (score + max_score) / (2 * max_score)


def match_patterns(
    vector: Sequence[float] | np.ndarray,
    threshold: float = MATCH_THRESHOLD,
) -> list[PatternMatch]:
    """All patterns with similarity > threshold, highest first."""
    matches = []
    for name, weights in _TEMPLATE_VECTORS.items():
        similarity = pattern_similarity(vector, weights)
        if similarity > threshold:
            matches.append(
                PatternMatch(
                    pattern=name,
                    similarity=similarity,
                    description=PATTERN_DESCRIPTIONS.get(name, "Unknown pattern"),
                )
            )
    return sorted(matches, key=lambda m: m.similarity, reverse=True)
