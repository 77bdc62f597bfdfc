"""
Compare a trained model with the rule-based rubric on the reference vectors.

Prints both scores for the risky and safe reference tokens and the collapse verdict.
Exit codes: 0 healthy, 1 quantization collapse, 2 no loadable or usable model.

Usage:
    python -m backend_argus.tools.compare_models
    python -m backend_argus.tools.compare_models --model models/bitnet-weights.json --threshold 25
"""

from __future__ import annotations

import argparse
import json
import sys
import warnings

from backend_argus.analytics.collapse_detector import (
    DEFAULT_GAP_THRESHOLD,
    RISKY_REFERENCE,
    SAFE_REFERENCE,
    QuantizationCollapseWarning,
    check_engine_collapse,
)
from backend_argus.analytics.rule_classifier import score_vector
from backend_argus.argus_logging import get_logger
from backend_argus.core.exceptions import InferenceError, ModelConfigurationError, ModelValidationError
from backend_argus.ml.inference import InferenceEngine
from backend_argus.ml.model_loader import load_model

logger = get_logger(__name__)


def compare(engine: InferenceEngine, threshold: int = DEFAULT_GAP_THRESHOLD) -> dict:
    risky = engine.predict(RISKY_REFERENCE)
    safe = engine.predict(SAFE_REFERENCE)
    rule_risky = score_vector(RISKY_REFERENCE)
    rule_safe = score_vector(SAFE_REFERENCE)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", QuantizationCollapseWarning)
        report = check_engine_collapse(engine, threshold=threshold)
    return {
        "model": engine.model.describe(),
        "neural": {
            "risky": {"score": risky.risk_score, "level": risky.risk_level.value, "confidence": risky.confidence},
            "safe": {"score": safe.risk_score, "level": safe.risk_level.value, "confidence": safe.confidence},
        },
        "ruleBased": {
            "risky": {"score": rule_risky.score, "level": rule_risky.level.value},
            "safe": {"score": rule_safe.score, "level": rule_safe.level.value},
        },
        "collapse": report.to_dict(),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Neural vs rule-based comparison on reference tokens.")
    parser.add_argument("--model", default=None, help="Model artifact path (default: ARGUS_MODEL_PATH / fallbacks)")
    parser.add_argument("--threshold", type=int, default=DEFAULT_GAP_THRESHOLD, help="Minimum score gap")
    args = parser.parse_args(argv)

    try:
        model = load_model(args.model)
    except (ModelConfigurationError, ModelValidationError) as e:
        print(f"no usable model: {e}", file=sys.stderr)
        return 2

    try:
        result = compare(InferenceEngine(model), threshold=args.threshold)
    except InferenceError as e:
        print(f"model output is not finite: {e}", file=sys.stderr)
        return 2
    print(json.dumps(result, indent=2))
    if result["collapse"]["collapsed"]:
        logger.warning("compare_models_collapsed", **result["collapse"])
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
