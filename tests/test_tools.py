"""
Tests for the command-line tools (classify_token, compare_models).
"""

from __future__ import annotations

import asyncio
import json
from unittest.mock import MagicMock, patch

from backend_argus.analytics.collapse_detector import SAFE_REFERENCE
from backend_argus.classifier.engine import TokenRiskClassifier
from backend_argus.classifier.metrics import MetricsReporter
from backend_argus.tools import classify_token, compare_models

RISKY_OBSERVATION = {
    "mint": "So11111111111111111111111111111111111111112",
    "market": {"liquidity": 500, "volume_24h": 2_000},
    "holders": {"count": 12, "top10_percent": 90, "top_whale_percent": 60},
    "security": {"mint_revoked": False, "freeze_revoked": False},
    "creator": {"rugged_tokens": 3},
    "wash_trading": {"detected": True, "percent": 80},
}


def _write(tmp_path, name, payload):
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_classify_observation(tmp_path, capsys):
    path = _write(tmp_path, "obs.json", RISKY_OBSERVATION)
    assert classify_token.main([path, "--patterns"]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["mint"] == RISKY_OBSERVATION["mint"]
    assert result["model"]["mode"] == "rule-based"
    assert result["verdict"]["riskLevel"] == "SCAM"
    assert result["verdict"]["riskScore"] == 100
    types = {f["type"] for f in result["verdict"]["flags"]}
    assert {"MINT_ACTIVE", "FREEZE_ACTIVE", "SERIAL_RUGGER", "WASH_TRADING"} <= types
    assert isinstance(result["patterns"], list)
    assert "summary" in result


def test_classify_vector_with_model(tmp_path, capsys, separating_artifact):
    path = _write(tmp_path, "vec.json", SAFE_REFERENCE.tolist())
    assert classify_token.main([path, "--vector", "--model", str(separating_artifact)]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["model"]["mode"] == "neural"
    assert result["verdict"]["riskLevel"] == "SAFE"
    assert set(result["verdict"]["probabilities"]) == {"SAFE", "SUSPICIOUS", "DANGEROUS", "SCAM"}
    assert "patterns" not in result


def test_classify_vector_rule_based(tmp_path, capsys):
    path = _write(tmp_path, "vec.json", SAFE_REFERENCE.tolist())
    assert classify_token.main([path, "--vector"]) == 0
    verdict = json.loads(capsys.readouterr().out)["verdict"]
    assert verdict["riskScore"] == 35
    assert verdict["confidence"] == 85


def test_classify_exit_codes(tmp_path, capsys):
    assert classify_token.main([str(tmp_path / "missing.json")]) == 2
    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{not json", encoding="utf-8")
    assert classify_token.main([str(bad_json)]) == 2
    short = _write(tmp_path, "short.json", [0.5] * 28)
    assert classify_token.main([short, "--vector"]) == 1
    not_object = _write(tmp_path, "list.json", [1, 2, 3])
    assert classify_token.main([not_object]) == 1
    assert "classification failed" in capsys.readouterr().err


def test_compare_models_exit_codes(capsys, separating_artifact, collapsed_artifact):
    assert compare_models.main([]) == 2

    assert compare_models.main(["--model", str(separating_artifact)]) == 0
    healthy = json.loads(capsys.readouterr().out)
    assert healthy["collapse"]["collapsed"] is False
    assert healthy["neural"]["risky"]["level"] == "SCAM"
    assert healthy["ruleBased"]["safe"]["score"] == 35

    assert compare_models.main(["--model", str(collapsed_artifact)]) == 1
    collapsed = json.loads(capsys.readouterr().out)
    assert collapsed["collapse"]["collapsed"] is True
    assert collapsed["ruleBased"]["risky"]["score"] == 100


def test_classify_payload_waits_for_metrics(settings_for):
    reporter = MetricsReporter("http://metrics.invalid/ingest")
    post = MagicMock()
    classifier = TokenRiskClassifier(settings=settings_for(), metrics=reporter)
    with patch.object(MetricsReporter, "_post", post):
        result = asyncio.run(classify_token.classify_payload(SAFE_REFERENCE.tolist(), classifier, as_vector=True))
        post.assert_called_once()
    assert post.call_args.args[0]["confidence"] == result["verdict"]["confidence"]
    reporter.close()
