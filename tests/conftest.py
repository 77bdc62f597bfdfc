"""
Pytest fixtures for Argus tests.

Every test runs with ARGUS_* unset and the working directory in a temp dir, so
fallback model discovery never picks up a stray bitnet-weights.json.
Model artifacts are built in-memory with export_model and written to tmp_path.
"""

from __future__ import annotations

import json

import numpy as np
import pytest

from backend_argus.analytics.collapse_detector import RISKY_REFERENCE, SAFE_REFERENCE
from backend_argus.config.settings import ClassifierSettings
from backend_argus.ml.feature_vector import (
    IDX_BUNDLE_DETECTED,
    IDX_CREATOR_RUG_HISTORY,
    IDX_FREEZE_DISABLED,
    IDX_LIQUIDITY_LOG,
    IDX_MINT_DISABLED,
    IDX_TOP_WHALE_PERCENT,
)
from backend_argus.ml.layers import DenseLayer, TernaryLayer
from backend_argus.ml.model_loader import export_model

ARGUS_ENV_VARS = (
    "ARGUS_MODEL_PATH",
    "ARGUS_METRICS_URL",
    "ARGUS_METRICS_TIMEOUT_SEC",
    "ARGUS_COLLAPSE_FALLBACK",
    "ARGUS_EAGER_LOAD",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    for name in ARGUS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def risky_vector() -> np.ndarray:
    return RISKY_REFERENCE.copy()


@pytest.fixture
def safe_vector() -> np.ndarray:
    return SAFE_REFERENCE.copy()


def random_ternary_layers(architecture: list[int], seed: int = 7) -> list[TernaryLayer]:
    rng = np.random.default_rng(seed)
    layers = []
    for cols, rows in zip(architecture[:-1], architecture[1:]):
        weights = rng.integers(-1, 2, size=(rows, cols)).astype(np.int8)
        bias = rng.normal(0.0, 0.1, size=rows)
        layers.append(TernaryLayer(weights=weights, bias=bias))
    return layers


def separating_dense_layer() -> DenseLayer:
    """Single 29 -> 4 layer that scores risky tokens SCAM and safe tokens SAFE."""
    weights = np.zeros((4, 29), dtype=np.float64)
    weights[0, IDX_MINT_DISABLED] = 4.0
    weights[0, IDX_FREEZE_DISABLED] = 4.0
    weights[0, IDX_LIQUIDITY_LOG] = 4.0
    weights[3, IDX_BUNDLE_DETECTED] = 4.0
    weights[3, IDX_CREATOR_RUG_HISTORY] = 8.0
    weights[3, IDX_TOP_WHALE_PERCENT] = 4.0
    return DenseLayer(weights=weights, bias=np.zeros(4))


def collapsed_ternary_layer() -> TernaryLayer:
    """All-zero ternary weights: every input gets the same uniform prediction."""
    return TernaryLayer(weights=np.zeros((4, 29), dtype=np.int8), bias=np.zeros(4))


def write_artifact(path, layers, **overrides):
    payload = export_model(layers, accuracy=0.91, trained_on=1200, trained_at="2026-01-15T00:00:00Z")
    payload.update(overrides)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def ternary_artifact(tmp_path):
    return write_artifact(tmp_path / "ternary.json", random_ternary_layers([29, 16, 8, 4]))


@pytest.fixture
def separating_artifact(tmp_path):
    return write_artifact(tmp_path / "separating.json", [separating_dense_layer()])


@pytest.fixture
def collapsed_artifact(tmp_path):
    return write_artifact(tmp_path / "collapsed.json", [collapsed_ternary_layer()])


@pytest.fixture
def settings_for():
    """Build ClassifierSettings for a model path without touching the environment."""

    def _make(model_path=None, **kwargs) -> ClassifierSettings:
        return ClassifierSettings(model_path=str(model_path) if model_path else None, **kwargs)

    return _make


@pytest.fixture
def make_ternary_layers():
    return random_ternary_layers


@pytest.fixture
def make_artifact(tmp_path):
    """Write layers (plus payload overrides) to tmp_path/<name> and return the path."""

    def _make(layers, name: str = "model.json", **overrides):
        return write_artifact(tmp_path / name, layers, **overrides)

    return _make
