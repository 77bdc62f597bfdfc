"""
Forward pass over a loaded model: ReLU hidden layers, softmax output.

Output probabilities are positional [P(SAFE), P(SUSPICIOUS), P(DANGEROUS), P(SCAM)].
risk_score = round(clamp(15*P0 + 50*P1 + 75*P2 + 95*P3, 0, 100)),
risk_level = class at argmax, confidence = round(100 * max(P)).
Identical input and weights always give identical output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from backend_argus.core.exceptions import InferenceError
from backend_argus.core.models import CLASS_ORDER, RiskLevel
from backend_argus.ml.feature_vector import validate_vector
from backend_argus.ml.model_loader import LoadedModel

# Expected-value weights per class, in CLASS_ORDER
CLASS_SCORE_WEIGHTS = np.array([15.0, 50.0, 75.0, 95.0], dtype=np.float64)


def relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(x, 0.0)


def softmax(logits: np.ndarray) -> np.ndarray:
    """Numerically stable softmax: subtract the max logit before exponentiating."""
    z = np.asarray(logits, dtype=np.float64)
    e = np.exp(z - np.max(z))
    return e / e.sum()


def expected_risk_score(probabilities: Sequence[float] | np.ndarray) -> int:
    """Probability-weighted class score, rounded and clamped to 0-100."""
    proba = np.asarray(probabilities, dtype=np.float64)
    score = float(np.dot(proba, CLASS_SCORE_WEIGHTS))
    return max(0, min(100, int(round(score))))


@dataclass(frozen=True)
class NeuralPrediction:
    probabilities: tuple[float, ...]
    risk_score: int
    risk_level: RiskLevel
    confidence: int


class InferenceEngine:
    """Runs the layers of a LoadedModel. Owns the layers for the process lifetime."""

    def __init__(self, model: LoadedModel) -> None:
        self._model = model
        self._layers = model.layers

    @property
    def model(self) -> LoadedModel:
        return self._model

    def forward(self, vector: Sequence[float] | np.ndarray) -> np.ndarray:
        """
        Return class probabilities (float64, len 4) for a 29-float vector.

        Raises InferenceError when the logits overflow (inf or NaN).
        """
        activation = validate_vector(vector).astype(np.float64)
        last = len(self._layers) - 1
        with np.errstate(over="ignore", invalid="ignore"):
            for i, layer in enumerate(self._layers):
                pre = layer.forward(activation)
                activation = pre if i == last else relu(pre)
        if not np.all(np.isfinite(activation)):
            raise InferenceError("model produced non-finite logits")
        return softmax(activation)

    def predict(self, vector: Sequence[float] | np.ndarray) -> NeuralPrediction:
        proba = self.forward(vector)
        best = int(np.argmax(proba))
        return NeuralPrediction(
            probabilities=tuple(float(p) for p in proba),
            risk_score=expected_risk_score(proba),
            risk_level=CLASS_ORDER[best],
            confidence=max(0, min(100, int(round(100.0 * float(proba[best]))))),
        )
