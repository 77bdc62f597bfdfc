"""
Quantization-collapse detector.

A trained ternary model can lose its ability to separate classes (weights
collapse to a degenerate pattern) while still loading and running fine. The
detector compares how far apart the model scores a risky and a safe reference
token against how far apart the rule-based rubric scores them. If the rubric
separates them by >= threshold points and the model does not, the model is
flagged: QuantizationCollapseWarning is issued and a structlog warning logged.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Any

import numpy as np

from backend_argus.analytics.rule_classifier import score_vector
from backend_argus.argus_logging import get_logger
from backend_argus.ml.inference import InferenceEngine

logger = get_logger(__name__)

DEFAULT_GAP_THRESHOLD = 20

# Reference vectors: low liquidity, whale-held, authorities active, bundled, rugger creator
RISKY_REFERENCE = np.array(
    [
        0.2, 0.8, 0.3, 0.5, 0.5,
        0.3, 0.8, 0.7, 0.6, 0.3, 0.6,
        0.0, 0.0, 0.0, 0.0,
        1.0, 0.5, 0.6, 0.8, 0.5,
        0.3, 0.4, 0.7, 0.8,
        0.9, 0.5,
        0.0, 0.5, 0.3,
    ],
    dtype=np.float32,
)
# Deep liquidity, spread holders, authorities revoked, LP locked, no bundle, clean creator
SAFE_REFERENCE = np.array(
    [
        0.9, 0.3, 0.8, 0.5, 0.6,
        0.7, 0.2, 0.3, 0.1, 0.1, 0.1,
        1.0, 1.0, 1.0, 1.0,
        0.0, 0.0, 0.0, 0.0, 0.8,
        0.6, 0.5, 0.4, 0.3,
        0.1, 0.3,
        1.0, 0.0, 0.1,
    ],
    dtype=np.float32,
)


class QuantizationCollapseWarning(UserWarning):
    """The loaded model no longer separates risky from safe tokens."""


@dataclass(frozen=True)
class CollapseReport:
    neural_risky: int
    neural_safe: int
    rule_risky: int
    rule_safe: int
    threshold: int

    @property
    def neural_gap(self) -> int:
        return abs(self.neural_risky - self.neural_safe)

    @property
    def rule_gap(self) -> int:
        return abs(self.rule_risky - self.rule_safe)

    @property
    def collapsed(self) -> bool:
        return self.neural_gap < self.threshold and self.rule_gap >= self.threshold

    def to_dict(self) -> dict[str, Any]:
        return {
            "neuralRisky": self.neural_risky,
            "neuralSafe": self.neural_safe,
            "ruleRisky": self.rule_risky,
            "ruleSafe": self.rule_safe,
            "neuralGap": self.neural_gap,
            "ruleGap": self.rule_gap,
            "threshold": self.threshold,
            "collapsed": self.collapsed,
        }


def detect_quantization_collapse(
    neural_risky: int,
    neural_safe: int,
    rule_risky: int,
    rule_safe: int,
    threshold: int = DEFAULT_GAP_THRESHOLD,
) -> CollapseReport:
    """Compare score gaps; warn when the model's gap is below threshold but the rubric's is not."""
    report = CollapseReport(
        neural_risky=int(neural_risky),
        neural_safe=int(neural_safe),
        rule_risky=int(rule_risky),
        rule_safe=int(rule_safe),
        threshold=int(threshold),
    )
    if report.collapsed:
        logger.warning(
            "quantization_collapse_detected",
            neural_gap=report.neural_gap,
            rule_gap=report.rule_gap,
            threshold=report.threshold,
        )
        warnings.warn(
            f"quantization collapse: model separates reference tokens by {report.neural_gap} points, "
            f"rule-based by {report.rule_gap} (threshold {report.threshold})",
            QuantizationCollapseWarning,
            stacklevel=2,
        )
    return report


def check_engine_collapse(
    engine: InferenceEngine,
    threshold: int = DEFAULT_GAP_THRESHOLD,
    risky: np.ndarray = RISKY_REFERENCE,
    safe: np.ndarray = SAFE_REFERENCE,
) -> CollapseReport:
    """Score the reference vectors with the model and with the rubric, then detect collapse."""
    return detect_quantization_collapse(
        engine.predict(risky).risk_score,
        engine.predict(safe).risk_score,
        score_vector(risky).score,
        score_vector(safe).score,
        threshold,
    )
