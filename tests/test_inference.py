"""
Tests for the ternary/dense forward pass and output interpretation (layers, inference).
"""

from __future__ import annotations

import numpy as np
import pytest

from backend_argus.core.exceptions import FeatureDimensionError, InferenceError
from backend_argus.core.models import RiskLevel
from backend_argus.ml.inference import InferenceEngine, expected_risk_score, relu, softmax
from backend_argus.ml.layers import DenseLayer, TernaryLayer, build_layer
from backend_argus.ml.model_loader import load_model, parse_model, export_model


def _dyadic_ternary_layer(rows: int, cols: int, seed: int) -> TernaryLayer:
    rng = np.random.default_rng(seed)
    weights = rng.integers(-1, 2, size=(rows, cols)).astype(np.int8)
    bias = rng.integers(-8, 9, size=rows) / 8.0
    return TernaryLayer(weights=weights, bias=bias)


def test_ternary_matches_dense_exactly():
    """Add/subtract/skip equals a float matmul with weights cast to {-1.0, 0.0, 1.0}."""
    rng = np.random.default_rng(11)
    for seed in range(5):
        ternary = _dyadic_ternary_layer(16, 29, seed)
        dense = DenseLayer(weights=ternary.as_float_matrix(), bias=ternary.bias.copy())
        # multiples of 1/8 keep every partial sum exact in float64
        x = rng.integers(-8, 9, size=29) / 8.0
        np.testing.assert_array_equal(ternary.forward(x), dense.forward(x))


def test_ternary_matches_dense_random_inputs():
    ternary = _dyadic_ternary_layer(32, 29, 5)
    dense = DenseLayer(weights=ternary.as_float_matrix(), bias=ternary.bias)
    x = np.random.default_rng(2).random(29)
    np.testing.assert_allclose(ternary.forward(x), dense.forward(x), rtol=0, atol=1e-12)


def test_ternary_forward_by_hand():
    weights = np.array([[1, -1, 0], [0, 0, 0], [-1, -1, 1]], dtype=np.int8)
    layer = TernaryLayer(weights=weights, bias=np.array([0.5, -1.0, 0.0]))
    out = layer.forward(np.array([2.0, 3.0, 7.0]))
    np.testing.assert_array_equal(out, [0.5 + 2.0 - 3.0, -1.0, -2.0 - 3.0 + 7.0])
    assert layer.sparsity == pytest.approx(4 / 9)


def test_build_layer_dispatch():
    flat = [1, 0, -1, 0, 1, 1]
    ternary = build_layer("ternary", flat, [0.0, 0.0], rows=2, cols=3)
    dense = build_layer("dense", [0.5] * 6, [0.0, 0.0], rows=2, cols=3)
    assert isinstance(ternary, TernaryLayer)
    assert isinstance(dense, DenseLayer)
    assert ternary.weights.shape == (2, 3)
    with pytest.raises(ValueError):
        build_layer("int4", flat, [0.0, 0.0], rows=2, cols=3)


def test_softmax_stable_and_normalized():
    p = softmax(np.array([1000.0, 1000.0, -1000.0, 0.0]))
    assert np.all(np.isfinite(p))
    assert p.sum() == pytest.approx(1.0, abs=1e-12)
    assert p[0] == pytest.approx(0.5)
    np.testing.assert_allclose(softmax(np.zeros(4)), [0.25] * 4)


def test_relu():
    np.testing.assert_array_equal(relu(np.array([-1.0, 0.0, 2.5])), [0.0, 0.0, 2.5])


def test_expected_risk_score():
    assert expected_risk_score([1, 0, 0, 0]) == 15
    assert expected_risk_score([0, 0, 0, 1]) == 95
    assert expected_risk_score([0.25, 0.25, 0.25, 0.25]) == 59  # 58.75
    assert expected_risk_score([0, 0.5, 0.5, 0]) == 62  # 62.5 rounds half to even


def test_predict_ranges_and_determinism(ternary_artifact, risky_vector):
    engine = InferenceEngine(load_model(ternary_artifact))
    rng = np.random.default_rng(8)
    for _ in range(25):
        x = rng.random(29).astype(np.float32)
        first = engine.predict(x)
        second = engine.predict(x)
        assert first == second
        assert 0 <= first.risk_score <= 100
        assert 0 <= first.confidence <= 100
        assert first.risk_level in set(RiskLevel)
        assert sum(first.probabilities) == pytest.approx(1.0, abs=1e-5)
    np.testing.assert_array_equal(engine.forward(risky_vector), engine.forward(risky_vector))


def test_separating_model_predictions(separating_artifact, risky_vector, safe_vector):
    engine = InferenceEngine(load_model(separating_artifact))
    risky = engine.predict(risky_vector)
    safe = engine.predict(safe_vector)
    assert risky.risk_level is RiskLevel.SCAM
    assert risky.risk_score == 95
    assert risky.confidence == 100
    assert safe.risk_level is RiskLevel.SAFE
    assert safe.risk_score == 15


def test_collapsed_model_uniform(collapsed_artifact, risky_vector, safe_vector):
    engine = InferenceEngine(load_model(collapsed_artifact))
    for vec in (risky_vector, safe_vector):
        pred = engine.predict(vec)
        np.testing.assert_allclose(pred.probabilities, [0.25] * 4)
        assert pred.risk_score == 59
        assert pred.confidence == 25
        assert pred.risk_level is RiskLevel.SAFE  # argmax tie -> first class


def test_ternary_and_dense_models_agree(make_ternary_layers, risky_vector):
    layers = make_ternary_layers([29, 8, 4], seed=21)
    ternary_model = parse_model(export_model(layers, 0.9, 10, "2026-01-01T00:00:00Z"))
    dense_layers = [DenseLayer(weights=layer.as_float_matrix(), bias=layer.bias) for layer in layers]
    dense_model = parse_model(export_model(dense_layers, 0.9, 10, "2026-01-01T00:00:00Z"))
    a = InferenceEngine(ternary_model).forward(risky_vector)
    b = InferenceEngine(dense_model).forward(risky_vector)
    np.testing.assert_allclose(a, b, rtol=0, atol=1e-12)


def test_forward_rejects_short_vector(ternary_artifact):
    engine = InferenceEngine(load_model(ternary_artifact))
    with pytest.raises(FeatureDimensionError):
        engine.forward([0.5] * 20)


def test_overflowing_logits_raise_inference_error():
    layer = DenseLayer(weights=np.full((4, 29), 1e308), bias=np.zeros(4))
    engine = InferenceEngine(parse_model(export_model([layer], 0.9, 10, "2026-01-01T00:00:00Z")))
    with pytest.raises(InferenceError, match="non-finite"):
        engine.predict([1.0] * 29)
    # Small inputs stay finite
    assert engine.predict([0.0] * 29).confidence == 25
