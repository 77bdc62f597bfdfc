"""
Tests for the verdict data models (RiskFlag, ClassifierOutput).
"""

from __future__ import annotations

import dataclasses

import pytest

from backend_argus.core.models import (
    CLASS_LABELS,
    MODE_NEURAL,
    ClassifierOutput,
    RiskFlag,
    RiskLevel,
    Severity,
)
from backend_argus.ml.importance import uniform_importance


def _output(**overrides) -> ClassifierOutput:
    fields = dict(
        risk_score=72,
        risk_level=RiskLevel.DANGEROUS,
        confidence=61,
        feature_importance=uniform_importance(),
        flags=[RiskFlag("MINT_ACTIVE", 1.0, Severity.HIGH)],
        mode=MODE_NEURAL,
        probabilities=(0.1, 0.2, 0.61, 0.09),
    )
    fields.update(overrides)
    return ClassifierOutput(**fields)


def test_class_labels_order():
    assert CLASS_LABELS == ("SAFE", "SUSPICIOUS", "DANGEROUS", "SCAM")


def test_flag_probability_rounded():
    assert RiskFlag("SUSPICIOUS_VOLUME", 0.123456, Severity.MEDIUM).to_dict() == {
        "type": "SUSPICIOUS_VOLUME",
        "probability": 0.1235,
        "severity": "MEDIUM",
    }


def test_to_dict_camel_case():
    body = _output().to_dict()
    assert body["riskScore"] == 72
    assert body["riskLevel"] == "DANGEROUS"
    assert body["mode"] == "neural"
    assert body["flags"] == [{"type": "MINT_ACTIVE", "probability": 1.0, "severity": "HIGH"}]
    assert body["probabilities"]["DANGEROUS"] == 0.61
    assert sum(body["featureImportance"].values()) == pytest.approx(1.0, abs=1e-3)


def test_rule_output_omits_probabilities():
    assert "probabilities" not in _output(probabilities=None, mode="rule-based").to_dict()


def test_output_is_immutable():
    source = uniform_importance()
    output = _output(feature_importance=source, metadata={"modelVersion": 1})
    source["market"] = 99.0
    assert output.feature_importance["market"] == pytest.approx(1 / 7)
    assert isinstance(output.flags, tuple)
    with pytest.raises(TypeError):
        output.metadata["modelVersion"] = 2
    with pytest.raises(dataclasses.FrozenInstanceError):
        output.confidence = 0
    assert output.has_flag("MINT_ACTIVE")
    assert not output.has_flag("FREEZE_ACTIVE")
