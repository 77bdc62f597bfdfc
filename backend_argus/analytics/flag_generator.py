"""
Threshold flags derived from the feature vector, independent of which scorer ran.

Flags are advisory; risk_score / risk_level stay authoritative. On the neural
path these are the verdict's flags. On the rule path the scorer's own flags
come first and generator flags are merged in by type (flags.merge_flags).
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from backend_argus.analytics import flags as F
from backend_argus.analytics.rule_classifier import above, below, bundle_tier, is_active, whale_tier
from backend_argus.core.models import CLASS_ORDER, RiskFlag, RiskLevel, Severity
from backend_argus.ml.feature_vector import (
    IDX_BUNDLE_CONFIDENCE,
    IDX_BUNDLE_DETECTED,
    IDX_BUNDLE_QUALITY,
    IDX_CREATOR_RUG_HISTORY,
    IDX_FREEZE_DISABLED,
    IDX_GINI,
    IDX_MINT_DISABLED,
    IDX_TOP10_CONCENTRATION,
    IDX_TOP_WHALE_PERCENT,
    IDX_VOLUME_TO_LIQUIDITY,
    validate_vector,
)

CONCENTRATION_THRESHOLD = 0.8
SUSPICIOUS_VOLUME_RATIO = 0.8
SCAM_PROBABILITY_THRESHOLD = 0.5

_SCAM_INDEX = CLASS_ORDER.index(RiskLevel.SCAM)


class FlagGenerator:
    def generate(
        self,
        vector: Sequence[float] | np.ndarray,
        probabilities: Sequence[float] | None = None,
    ) -> list[RiskFlag]:
        """Flags for a 29-float vector; pass class probabilities to enable HIGH_SCAM_PROBABILITY."""
        x = validate_vector(vector)
        out: list[RiskFlag] = []

        if is_active(x[IDX_MINT_DISABLED]):
            out.append(F.make_flag(F.MINT_ACTIVE))
        if is_active(x[IDX_FREEZE_DISABLED]):
            out.append(F.make_flag(F.FREEZE_ACTIVE))

        if not below(x[IDX_BUNDLE_DETECTED], 0.5):
            _, severity = bundle_tier(x[IDX_BUNDLE_QUALITY])
            out.append(F.make_flag(F.BUNDLE_DETECTED, x[IDX_BUNDLE_CONFIDENCE], severity))

        tier = whale_tier(x[IDX_TOP_WHALE_PERCENT])
        if tier is not None:
            _, flag_type, severity = tier
            out.append(F.make_flag(flag_type, 1.0 if severity is Severity.CRITICAL else 0.8, severity))

        if above(x[IDX_TOP10_CONCENTRATION], CONCENTRATION_THRESHOLD) or above(x[IDX_GINI], CONCENTRATION_THRESHOLD):
            out.append(F.make_flag(F.EXTREME_CONCENTRATION, 0.9))

        if above(x[IDX_CREATOR_RUG_HISTORY], 0.0):
            out.append(F.make_flag(F.SERIAL_RUGGER))

        if above(x[IDX_VOLUME_TO_LIQUIDITY], SUSPICIOUS_VOLUME_RATIO):
            out.append(F.make_flag(F.SUSPICIOUS_VOLUME, 0.7))

        if probabilities is not None and len(probabilities) == len(CLASS_ORDER):
            p_scam = float(probabilities[_SCAM_INDEX])
            if p_scam >= SCAM_PROBABILITY_THRESHOLD:
                out.append(F.make_flag(F.HIGH_SCAM_PROBABILITY, p_scam))

        return out
