"""
Data models for classifier output.

Responsibilities:
- Define risk levels, flag severities, risk flags and the ClassifierOutput verdict.
- Used by the rule-based scorer, the neural path, the flag generator and the CLI tools.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class RiskLevel(str, Enum):
    SAFE = "SAFE"
    SUSPICIOUS = "SUSPICIOUS"
    DANGEROUS = "DANGEROUS"
    SCAM = "SCAM"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# Positional order of the model's output classes
CLASS_ORDER: tuple[RiskLevel, ...] = (
    RiskLevel.SAFE,
    RiskLevel.SUSPICIOUS,
    RiskLevel.DANGEROUS,
    RiskLevel.SCAM,
)
CLASS_LABELS: tuple[str, ...] = tuple(level.value for level in CLASS_ORDER)

MODE_NEURAL = "neural"
MODE_RULE_BASED = "rule-based"

ESCALATING_SEVERITIES = frozenset({Severity.HIGH, Severity.CRITICAL})


@dataclass(frozen=True)
class RiskFlag:
    """Named, severity-tagged risk signal. Advisory only; risk_score stays authoritative."""

    flag_type: str
    probability: float
    severity: Severity

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.flag_type,
            "probability": round(float(self.probability), 4),
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class ClassifierOutput:
    """
    Unified verdict returned by both the neural and the rule-based path.

    risk_score: int 0-100. confidence: int 0-100. feature_importance: 7 categories, sums to 1.
    probabilities: class probabilities in CLASS_ORDER (neural path only, else None).
    """

    risk_score: int
    risk_level: RiskLevel
    confidence: int
    feature_importance: Mapping[str, float]
    flags: tuple[RiskFlag, ...]
    mode: str
    probabilities: tuple[float, ...] | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Read-only views so a returned verdict can never be mutated afterwards
        object.__setattr__(self, "feature_importance", MappingProxyType(dict(self.feature_importance)))
        object.__setattr__(self, "flags", tuple(self.flags))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def has_flag(self, flag_type: str) -> bool:
        return any(f.flag_type == flag_type for f in self.flags)

    def to_dict(self) -> dict[str, Any]:
        """Render the public camelCase shape (riskScore, riskLevel, confidence, featureImportance, flags)."""
        out: dict[str, Any] = {
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level.value,
            "confidence": self.confidence,
            "featureImportance": {k: round(v, 4) for k, v in self.feature_importance.items()},
            "flags": [f.to_dict() for f in self.flags],
            "mode": self.mode,
        }
        if self.probabilities is not None:
            out["probabilities"] = dict(zip(CLASS_LABELS, (round(p, 6) for p in self.probabilities)))
        return out
