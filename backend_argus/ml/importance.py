"""
First-layer feature importance, aggregated into the 7 feature categories.

An approximation, not a gradient/SHAP explanation: only the first layer's weights
are considered. Ternary layers attribute |x_i| per neuron with a non-zero weight
on input i; dense layers attribute |w_ji * x_i|. Category sums are normalized to 1;
with zero total contribution every category gets 1/7.
"""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np

from backend_argus.ml.feature_vector import CATEGORIES, CATEGORY_RANGES, validate_vector
from backend_argus.ml.layers import Layer


def uniform_importance() -> dict[str, float]:
    share = 1.0 / len(CATEGORIES)
    return {cat: share for cat in CATEGORIES}


def normalize_importance(raw: Mapping[str, float]) -> dict[str, float]:
    """Scale non-negative category totals to sum to 1; uniform when the total is 0."""
    clipped = {cat: max(0.0, float(raw.get(cat, 0.0))) for cat in CATEGORIES}
    total = sum(clipped.values())
    if total <= 0:
        return uniform_importance()
    return {cat: value / total for cat, value in clipped.items()}


def per_feature_contributions(layer: Layer, vector: Sequence[float] | np.ndarray) -> np.ndarray:
    """Raw per-feature totals (shape (29,)) from the first layer."""
    x = validate_vector(vector).astype(np.float64)
    return layer.input_contributions(x)


def category_importance(layer: Layer, vector: Sequence[float] | np.ndarray) -> dict[str, float]:
    """Normalized importance per category for one classification."""
    per_feature = per_feature_contributions(layer, vector)
    raw = {cat: float(per_feature[list(idx)].sum()) for cat, idx in CATEGORY_RANGES.items()}
    return normalize_importance(raw)
