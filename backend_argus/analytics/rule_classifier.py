"""
Rule-based risk scorer for Argus.

Deterministic fallback used whenever no trained model is loaded. Produces the
same verdict shape as the neural path so callers never care which one ran.
This is the single scoring rubric for every surface (engine, CLI tools,
collapse detector); tier helpers are shared with flag_generator.

Scoring, in order:
    base 35
    additive penalties (security, creator, bundle tier, wash trading tier,
        whale tiers, top-10 concentration, low holder count)
    floors: score = max(score, floor) for very new / very illiquid tokens
    escalation: >= 3 HIGH/CRITICAL flags -> floor 75, >= 2 -> floor 65
    clamp 0-100, map to level
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import numpy as np

from backend_argus.analytics import flags as F
from backend_argus.argus_logging import get_logger
from backend_argus.core.models import (
    ESCALATING_SEVERITIES,
    MODE_RULE_BASED,
    ClassifierOutput,
    RiskFlag,
    RiskLevel,
    Severity,
)
from backend_argus.ml.feature_vector import (
    CATEGORIES,
    IDX_AGE_DECAY,
    IDX_BUNDLE_CONFIDENCE,
    IDX_BUNDLE_DETECTED,
    IDX_BUNDLE_QUALITY,
    IDX_CREATOR_RUG_HISTORY,
    IDX_FREEZE_DISABLED,
    IDX_HOLDER_COUNT_LOG,
    IDX_LIQUIDITY_LOG,
    IDX_MINT_DISABLED,
    IDX_TOP10_CONCENTRATION,
    IDX_TOP_WHALE_PERCENT,
    validate_vector,
)
from backend_argus.ml.importance import normalize_importance

logger = get_logger(__name__)

BASE_SCORE = 35
RULE_CONFIDENCE = 85

MINT_ACTIVE_PENALTY = 20
FREEZE_ACTIVE_PENALTY = 30
RUG_HISTORY_PENALTY = 45
TOP10_PENALTY = 15
LOW_HOLDERS_PENALTY = 10

TOP10_THRESHOLD = 0.8
LOW_HOLDERS_THRESHOLD = 0.5
WASH_MIN_PERCENT = 30.0

# (exclusive lower bound, penalty, flag, severity), checked top down
WHALE_TIERS = (
    (0.5, 30, F.WHALE_DOMINANCE, Severity.CRITICAL),
    (0.3, 20, F.WHALE_CONCENTRATION, Severity.HIGH),
    (0.2, 10, F.WHALE_PRESENCE, Severity.MEDIUM),
)
WHALE_IMPORTANCE = {F.WHALE_DOMINANCE: 0.5, F.WHALE_CONCENTRATION: 0.3, F.WHALE_PRESENCE: 0.15}

AGE_FLOORS = ((0.9, 60), (0.75, 55), (0.5, 50))  # age_decay > threshold
LIQUIDITY_FLOORS = ((0.3, 55), (0.5, 50))  # liquidity_log < threshold
ESCALATION_FLOORS = ((3, 75), (2, 65))  # HIGH/CRITICAL flag count >= n

LEVEL_THRESHOLDS = (
    (80, RiskLevel.SCAM),
    (65, RiskLevel.DANGEROUS),
    (55, RiskLevel.SUSPICIOUS),
)


@dataclass(frozen=True)
class WashTradingSignal:
    """Auxiliary wash-trading detection result; not part of the feature vector."""

    detected: bool
    percent: float

    @classmethod
    def from_raw(cls, raw: Any) -> "WashTradingSignal | None":
        """Accept a WashTradingSignal, a {detected, percent} mapping, or None."""
        if raw is None or isinstance(raw, cls):
            return raw
        if not isinstance(raw, Mapping):
            return None
        try:
            percent = float(raw.get("percent") or 0.0)
        except (TypeError, ValueError):
            percent = 0.0
        return cls(detected=bool(raw.get("detected")), percent=percent)


@dataclass
class RuleScore:
    """Intermediate result of the rubric; to_output() builds the public verdict."""

    score: int
    level: RiskLevel
    flags: list[RiskFlag] = field(default_factory=list)
    importance: dict[str, float] = field(default_factory=dict)
    applied: list[str] = field(default_factory=list)

    def to_output(self, extra_flags: Sequence[RiskFlag] = ()) -> ClassifierOutput:
        return ClassifierOutput(
            risk_score=self.score,
            risk_level=self.level,
            confidence=RULE_CONFIDENCE,
            feature_importance=self.importance,
            flags=tuple(F.merge_flags(self.flags, extra_flags)),
            mode=MODE_RULE_BASED,
            metadata={"rules_applied": list(self.applied)},
        )


def above(value: float, threshold: float) -> bool:
    """value > threshold at float32 precision, so a feature equal to a threshold never crosses it."""
    return bool(np.float32(value) > np.float32(threshold))


def below(value: float, threshold: float) -> bool:
    return bool(np.float32(value) < np.float32(threshold))


def is_active(disabled_value: float) -> bool:
    """Authority is active when its *_disabled feature reads as 0."""
    return below(disabled_value, 0.5)


def bundle_tier(quality: float) -> tuple[int, Severity]:
    """Penalty and flag severity for a detected bundle given its quality score (0-1)."""
    if below(quality, 0.25):
        penalty = 40
    elif below(quality, 0.5):
        penalty = 30
    elif not above(quality, 0.75):
        penalty = 20
    else:
        penalty = 10
    return penalty, Severity.CRITICAL if penalty >= 30 else Severity.HIGH


def wash_trading_tier(percent: float) -> tuple[int, Severity]:
    if percent >= 70:
        penalty = 35
    elif percent >= 50:
        penalty = 25
    else:
        penalty = 15
    return penalty, Severity.CRITICAL if penalty > 25 else Severity.HIGH


def whale_tier(top_whale: float) -> tuple[int, str, Severity] | None:
    for threshold, penalty, flag_type, severity in WHALE_TIERS:
        if above(top_whale, threshold):
            return penalty, flag_type, severity
    return None


def score_to_level(score: int) -> RiskLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.SAFE


def _floor_for(value: float, floors: tuple[tuple[float, int], ...], rising: bool) -> int | None:
    for threshold, floor in floors:
        if above(value, threshold) if rising else below(value, threshold):
            return floor
    return None


def score_vector(
    vector: Sequence[float] | np.ndarray,
    wash_trading: WashTradingSignal | Mapping[str, Any] | None = None,
) -> RuleScore:
    """Apply the rubric to a 29-float vector. Raises FeatureDimensionError on a malformed vector."""
    x = validate_vector(vector)
    score = float(BASE_SCORE)
    flags: list[RiskFlag] = []
    importance = {cat: 0.0 for cat in CATEGORIES}
    applied: list[str] = []

    def penalize(points: int, flag: RiskFlag, category: str, weight: float) -> None:
        nonlocal score
        score += points
        importance[category] += weight
        flags.append(flag)
        applied.append(flag.flag_type)

    # Security
    if is_active(x[IDX_MINT_DISABLED]):
        penalize(MINT_ACTIVE_PENALTY, F.make_flag(F.MINT_ACTIVE), "security", 0.3)
    if is_active(x[IDX_FREEZE_DISABLED]):
        penalize(FREEZE_ACTIVE_PENALTY, F.make_flag(F.FREEZE_ACTIVE), "security", 0.5)

    # Creator
    if above(x[IDX_CREATOR_RUG_HISTORY], 0.0):
        penalize(RUG_HISTORY_PENALTY, F.make_flag(F.SERIAL_RUGGER), "creator", 0.8)

    # Bundle
    if not below(x[IDX_BUNDLE_DETECTED], 0.5):
        penalty, severity = bundle_tier(x[IDX_BUNDLE_QUALITY])
        flag = F.make_flag(F.BUNDLE_DETECTED, x[IDX_BUNDLE_CONFIDENCE], severity)
        penalize(penalty, flag, "bundle", penalty / 40)

    # Wash trading
    wash = WashTradingSignal.from_raw(wash_trading)
    if wash is not None and wash.detected and wash.percent > WASH_MIN_PERCENT:
        penalty, severity = wash_trading_tier(wash.percent)
        flag = F.make_flag(F.WASH_TRADING, min(1.0, wash.percent / 100 + 0.3), severity)
        penalize(penalty, flag, "trading", penalty / 35)

    # Holder concentration
    tier = whale_tier(x[IDX_TOP_WHALE_PERCENT])
    if tier is not None:
        penalty, flag_type, severity = tier
        probability = 1.0 if severity is Severity.CRITICAL else 0.8
        penalize(penalty, F.make_flag(flag_type, probability, severity), "holders", WHALE_IMPORTANCE[flag_type])
    if above(x[IDX_TOP10_CONCENTRATION], TOP10_THRESHOLD):
        penalize(TOP10_PENALTY, F.make_flag(F.EXTREME_CONCENTRATION, 0.9), "holders", 0.3)
    if below(x[IDX_HOLDER_COUNT_LOG], LOW_HOLDERS_THRESHOLD):
        penalize(LOW_HOLDERS_PENALTY, F.make_flag(F.LOW_HOLDER_COUNT, 0.7), "holders", 0.2)

    # Floors
    age_floor = _floor_for(x[IDX_AGE_DECAY], AGE_FLOORS, rising=True)
    if age_floor is not None:
        score = max(score, age_floor)
        importance["time"] += 0.3
        applied.append(f"AGE_FLOOR_{age_floor}")
    liquidity_floor = _floor_for(x[IDX_LIQUIDITY_LOG], LIQUIDITY_FLOORS, rising=False)
    if liquidity_floor is not None:
        score = max(score, liquidity_floor)
        importance["market"] += 0.3
        applied.append(f"LIQUIDITY_FLOOR_{liquidity_floor}")

    # Escalation by co-occurrence
    serious = sum(1 for f in flags if f.severity in ESCALATING_SEVERITIES)
    for min_count, floor in ESCALATION_FLOORS:
        if serious >= min_count:
            score = max(score, floor)
            applied.append(f"ESCALATION_FLOOR_{floor}")
            break

    final = max(0, min(100, int(round(score))))
    return RuleScore(
        score=final,
        level=score_to_level(final),
        flags=flags,
        importance=normalize_importance(importance),
        applied=applied,
    )


class RuleBasedClassifier:
    """Stateless wrapper so the engine can hold a scorer next to its InferenceEngine."""

    def classify(
        self,
        vector: Sequence[float] | np.ndarray,
        wash_trading: WashTradingSignal | Mapping[str, Any] | None = None,
        extra_flags: Sequence[RiskFlag] = (),
    ) -> ClassifierOutput:
        result = score_vector(vector, wash_trading=wash_trading)
        logger.debug("rule_classifier_scored", score=result.score, level=result.level.value, rules=result.applied)
        return result.to_output(extra_flags)

    def score(self, vector: Sequence[float] | np.ndarray, wash_trading: Any = None) -> int:
        return score_vector(vector, wash_trading=wash_trading).score
