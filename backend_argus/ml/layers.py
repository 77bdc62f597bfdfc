"""
Runtime weight layers for the quantized classifier.

A layer is a rows x cols weight matrix (rows = output neurons, cols = inputs)
plus a float bias per neuron. The quantization mode is chosen once, when the
loader builds the layer, by picking the class:

- TernaryLayer: weights restricted to {-1, 0, +1}. Forward pass adds inputs
  under +1, subtracts inputs under -1 and skips zeros; no multiplication.
- DenseLayer: arbitrary float weights, conventional multiply-accumulate.

Activations are float64 throughout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

import numpy as np

QUANTIZATION_TERNARY = "ternary"
QUANTIZATION_DENSE = "dense"


@dataclass(frozen=True, eq=False)
class Layer:
    """Base layer: weights (rows, cols) and bias (rows,)."""

    weights: np.ndarray
    bias: np.ndarray

    quantization: ClassVar[str] = ""

    @property
    def rows(self) -> int:
        return int(self.weights.shape[0])

    @property
    def cols(self) -> int:
        return int(self.weights.shape[1])

    @property
    def weight_count(self) -> int:
        return int(self.weights.size)

    def forward(self, x: np.ndarray) -> np.ndarray:
        """Pre-activation output (bias + weighted inputs), shape (rows,)."""
        raise NotImplementedError

    def input_contributions(self, x: np.ndarray) -> np.ndarray:
        """Per-input attribution summed over all neurons, shape (cols,)."""
        raise NotImplementedError

    def as_float_matrix(self) -> np.ndarray:
        return self.weights.astype(np.float64)


@dataclass(frozen=True, eq=False)
class TernaryLayer(Layer):
    """Multiplication-free layer; +1/-1 masks are precomputed once."""

    _positive: np.ndarray = field(init=False, repr=False, compare=False)
    _negative: np.ndarray = field(init=False, repr=False, compare=False)

    quantization: ClassVar[str] = QUANTIZATION_TERNARY

    def __post_init__(self) -> None:
        object.__setattr__(self, "_positive", self.weights == 1)
        object.__setattr__(self, "_negative", self.weights == -1)

    def forward(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        added = np.where(self._positive, x, 0.0).sum(axis=1)
        subtracted = np.where(self._negative, x, 0.0).sum(axis=1)
        return self.bias + added - subtracted

    def input_contributions(self, x: np.ndarray) -> np.ndarray:
        # |x_i| once per neuron with a non-zero weight on input i
        nonzero_per_input = np.count_nonzero(self.weights, axis=0)
        return nonzero_per_input * np.abs(np.asarray(x, dtype=np.float64))

    @property
    def sparsity(self) -> float:
        """Fraction of zero weights."""
        if self.weights.size == 0:
            return 0.0
        return float(np.count_nonzero(self.weights == 0)) / float(self.weights.size)


@dataclass(frozen=True, eq=False)
class DenseLayer(Layer):
    """Float-weight layer (artifact quantization "dense")."""

    quantization: ClassVar[str] = QUANTIZATION_DENSE

    def forward(self, x: np.ndarray) -> np.ndarray:
        return self.weights @ np.asarray(x, dtype=np.float64) + self.bias

    def input_contributions(self, x: np.ndarray) -> np.ndarray:
        return np.abs(self.weights * np.asarray(x, dtype=np.float64)).sum(axis=0)


def build_layer(quantization: str, flat_weights, biases, rows: int, cols: int) -> Layer:
    """Reshape a row-major flat weight array and return the layer class for quantization."""
    bias = np.asarray(biases, dtype=np.float64).reshape(rows)
    if quantization == QUANTIZATION_TERNARY:
        weights = np.asarray(flat_weights, dtype=np.int8).reshape(rows, cols)
        return TernaryLayer(weights=weights, bias=bias)
    if quantization == QUANTIZATION_DENSE:
        weights = np.asarray(flat_weights, dtype=np.float64).reshape(rows, cols)
        return DenseLayer(weights=weights, bias=bias)
    raise ValueError(f"unknown quantization: {quantization!r}")
