"""
Classify one token from a raw observation JSON file and print the verdict.

Input JSON uses the feature_extractor sections (market, holders, security,
bundle, trading, token, creator), plus optional "mint" and "wash_trading"
({"detected": bool, "percent": float}). With --vector the file instead holds
a plain list of 29 floats and extraction is skipped.

Usage:
    python -m backend_argus.tools.classify_token observation.json
    python -m backend_argus.tools.classify_token vector.json --vector --model models/bitnet-weights.json
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any

from backend_argus.argus_logging import bind_token
from backend_argus.classifier.engine import TokenRiskClassifier
from backend_argus.config.settings import get_settings
from backend_argus.core.exceptions import ArgusError
from backend_argus.ml.feature_extractor import extract_compressed


def _read_json(path: str) -> Any:
    if path == "-":
        return json.load(sys.stdin)
    with open(Path(path), encoding="utf-8") as f:
        return json.load(f)


async def classify_payload(
    payload: Any,
    classifier: TokenRiskClassifier,
    as_vector: bool = False,
    with_patterns: bool = False,
) -> dict[str, Any]:
    """Extract (unless as_vector), classify and return the printable result dict."""
    wash_trading = None
    mint = None
    if as_vector:
        vector = payload
        summary = None
    else:
        if not isinstance(payload, dict):
            raise ValueError("observation JSON must be an object")
        mint = payload.get("mint")
        wash_trading = payload.get("wash_trading")
        compressed = extract_compressed(payload)
        vector = compressed.to_vector()
        summary = compressed.summary()

    log = bind_token(str(mint or "unknown"))
    output = await classifier.classify(vector, wash_trading=wash_trading)
    log.info("classify_token_done", mode=output.mode, risk_score=output.risk_score, risk_level=output.risk_level.value)

    result: dict[str, Any] = {"verdict": output.to_dict(), "model": classifier.get_model_info()}
    if mint:
        result["mint"] = mint
    if summary:
        result["summary"] = summary
    if with_patterns:
        result["patterns"] = [m.to_dict() for m in classifier.match_patterns(vector)]
    await classifier.aclose()
    return result


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Classify token fraud risk from raw observations.")
    parser.add_argument("input", help="Observation JSON file ('-' for stdin)")
    parser.add_argument("--vector", action="store_true", help="Input is a list of 29 floats, skip extraction")
    parser.add_argument("--model", default=None, help="Model artifact path (overrides ARGUS_MODEL_PATH)")
    parser.add_argument("--patterns", action="store_true", help="Include known-pattern matches")
    args = parser.parse_args(argv)

    settings = dataclasses.replace(get_settings(), eager_load=False)
    if args.model:
        settings = dataclasses.replace(settings, model_path=args.model)
    classifier = TokenRiskClassifier(settings=settings)

    try:
        payload = _read_json(args.input)
        result = asyncio.run(classify_payload(payload, classifier, args.vector, args.patterns))
    except (OSError, json.JSONDecodeError) as e:
        print(f"cannot read {args.input}: {e}", file=sys.stderr)
        return 2
    except (ArgusError, ValueError) as e:
        print(f"classification failed: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
