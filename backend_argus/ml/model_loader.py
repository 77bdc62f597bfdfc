"""
Locate, parse and validate a trained classifier artifact (JSON) and build its layers.

Artifact fields:
    version:int, architecture:[29, ..., 4], quantization:"ternary"|"dense",
    weights:{layer1:[...], ...} (row-major rows x cols), biases:{layer1:[...], ...},
    classes:[SAFE, SUSPICIOUS, DANGEROUS, SCAM], featureCount:29,
    accuracy:float, trainedOn:int, trainedAt:str,
    optional featureNames:[...], trainingEpochs:int, finalLoss:float

Discovery: explicit path, then ARGUS_MODEL_PATH, then FALLBACK_MODEL_PATHS;
first existing file wins. No file anywhere is expected (rule-based mode), not an error.

load_model raises ModelConfigurationError / ModelValidationError.
try_load_model logs and returns None instead, so the caller can fall back.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from backend_argus.argus_logging import get_logger
from backend_argus.config.env import get_model_path
from backend_argus.core.exceptions import ModelConfigurationError, ModelValidationError
from backend_argus.core.models import CLASS_LABELS
from backend_argus.ml.feature_vector import FEATURE_COUNT, FEATURE_NAMES
from backend_argus.ml.layers import (
    QUANTIZATION_DENSE,
    QUANTIZATION_TERNARY,
    Layer,
    TernaryLayer,
    build_layer,
)

logger = get_logger(__name__)

MODEL_FILENAME = "bitnet-weights.json"
DEFAULT_MODEL_PATH = Path(__file__).resolve().parent / MODEL_FILENAME

# Tried in order (cwd-relative first, then the packaged default)
FALLBACK_MODEL_PATHS: tuple[Path, ...] = (
    Path(MODEL_FILENAME),
    Path("models") / MODEL_FILENAME,
    Path("src") / "reasoning" / MODEL_FILENAME,
    DEFAULT_MODEL_PATH,
)

# The trainer writes "float32" for unquantized exports
QUANTIZATION_ALIASES = {
    QUANTIZATION_TERNARY: QUANTIZATION_TERNARY,
    QUANTIZATION_DENSE: QUANTIZATION_DENSE,
    "float32": QUANTIZATION_DENSE,
}

OUTPUT_CLASS_COUNT = len(CLASS_LABELS)
TERNARY_VALUES = frozenset({-1, 0, 1})


@dataclass(frozen=True, eq=False)
class LoadedModel:
    """Validated artifact plus its runtime layers."""

    version: int
    architecture: tuple[int, ...]
    quantization: str
    layers: tuple[Layer, ...]
    classes: tuple[str, ...]
    accuracy: float | None
    trained_on: int | None
    trained_at: str | None
    source_path: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def total_weights(self) -> int:
        return sum(layer.weight_count for layer in self.layers)

    @property
    def first_layer(self) -> Layer:
        return self.layers[0]

    @property
    def sparsity(self) -> float | None:
        """Fraction of zero weights across ternary layers; None for dense models."""
        if self.quantization != QUANTIZATION_TERNARY:
            return None
        zeros = sum(
            layer.sparsity * layer.weight_count for layer in self.layers if isinstance(layer, TernaryLayer)
        )
        return zeros / self.total_weights if self.total_weights else 0.0

    def describe(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "architecture": list(self.architecture),
            "quantization": self.quantization,
            "total_weights": self.total_weights,
            "accuracy": self.accuracy,
            "trained_on": self.trained_on,
            "trained_at": self.trained_at,
            "source_path": self.source_path,
        }


def resolve_model_path(path: str | Path | None = None) -> Path | None:
    """
    Return the first existing artifact path, or None.

    Order: path argument, ARGUS_MODEL_PATH, then FALLBACK_MODEL_PATHS.
    """
    candidates: list[Path] = []
    configured = path or get_model_path()
    if configured:
        candidates.append(Path(configured))
    candidates.extend(FALLBACK_MODEL_PATHS)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    if configured:
        logger.warning("model_loader_configured_path_missing", path=str(configured))
    return None


def _require_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ModelValidationError(f"{key} must be an integer, got {value!r}")
    return value


def _validate_architecture(payload: dict[str, Any]) -> tuple[int, ...]:
    arch = payload.get("architecture")
    if not isinstance(arch, list) or len(arch) < 2:
        raise ModelValidationError("architecture must be a list of at least 2 layer widths")
    if not all(isinstance(w, int) and not isinstance(w, bool) and w > 0 for w in arch):
        raise ModelValidationError(f"architecture widths must be positive integers: {arch!r}")
    if arch[0] != FEATURE_COUNT:
        raise ModelValidationError(f"architecture[0] must be {FEATURE_COUNT}, got {arch[0]}")
    if arch[-1] != OUTPUT_CLASS_COUNT:
        raise ModelValidationError(f"architecture[-1] must be {OUTPUT_CLASS_COUNT}, got {arch[-1]}")
    return tuple(arch)


def _validate_numbers(values: Any, name: str, expected_len: int) -> list[float]:
    if not isinstance(values, list):
        raise ModelValidationError(f"{name} must be a list")
    if len(values) != expected_len:
        raise ModelValidationError(f"{name} has {len(values)} values, expected {expected_len}")
    out: list[float] = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ModelValidationError(f"{name} contains a non-numeric value: {v!r}")
        try:
            f = float(v)
        except OverflowError:
            raise ModelValidationError(f"{name} contains an integer too large for a float") from None
        if not math.isfinite(f):
            raise ModelValidationError(f"{name} contains a non-finite value: {v!r}")
        out.append(f)
    return out


def _validate_metadata(payload: dict[str, Any]) -> None:
    feature_count = _require_int(payload, "featureCount")
    if feature_count != FEATURE_COUNT:
        raise ModelValidationError(
            f"featureCount {feature_count} does not match runtime feature count {FEATURE_COUNT}"
        )
    classes = payload.get("classes")
    if classes != list(CLASS_LABELS):
        raise ModelValidationError(f"classes must be {list(CLASS_LABELS)}, got {classes!r}")
    names = payload.get("featureNames")
    if names is not None and names != list(FEATURE_NAMES):
        raise ModelValidationError("featureNames do not match the runtime feature order")


def parse_model(payload: Any, source_path: str | None = None) -> LoadedModel:
    """Validate an artifact dict and build its layers. Raises ModelValidationError."""
    if not isinstance(payload, dict):
        raise ModelValidationError("model artifact must be a JSON object")

    version = _require_int(payload, "version")
    architecture = _validate_architecture(payload)
    _validate_metadata(payload)

    raw_quant = str(payload.get("quantization") or "").strip().lower()
    quantization = QUANTIZATION_ALIASES.get(raw_quant)
    if quantization is None:
        raise ModelValidationError(f"unknown quantization {payload.get('quantization')!r}")

    weights = payload.get("weights")
    biases = payload.get("biases")
    if not isinstance(weights, dict) or not isinstance(biases, dict):
        raise ModelValidationError("weights and biases must be objects keyed by layer name")

    layers: list[Layer] = []
    for idx in range(len(architecture) - 1):
        key = f"layer{idx + 1}"
        if key not in weights or key not in biases:
            raise ModelValidationError(f"missing weights/biases for {key}")
        cols, rows = architecture[idx], architecture[idx + 1]
        flat = _validate_numbers(weights[key], f"weights.{key}", rows * cols)
        bias = _validate_numbers(biases[key], f"biases.{key}", rows)
        if quantization == QUANTIZATION_TERNARY and any(w not in TERNARY_VALUES for w in flat):
            raise ModelValidationError(f"weights.{key} contains values outside {{-1, 0, 1}}")
        layers.append(build_layer(quantization, flat, bias, rows, cols))

    accuracy = payload.get("accuracy")
    trained_on = payload.get("trainedOn")
    return LoadedModel(
        version=version,
        architecture=architecture,
        quantization=quantization,
        layers=tuple(layers),
        classes=tuple(CLASS_LABELS),
        accuracy=float(accuracy) if isinstance(accuracy, (int, float)) and not isinstance(accuracy, bool) else None,
        trained_on=int(trained_on) if isinstance(trained_on, int) and not isinstance(trained_on, bool) else None,
        trained_at=str(payload["trainedAt"]) if payload.get("trainedAt") is not None else None,
        source_path=source_path,
        extra={k: payload[k] for k in ("trainingEpochs", "finalLoss") if k in payload},
    )


def load_model(path: str | Path | None = None) -> LoadedModel:
    """
    Resolve, read and validate the artifact.

    Raises ModelConfigurationError (no file / unreadable) or ModelValidationError (bad content).
    """
    resolved = resolve_model_path(path)
    if resolved is None:
        raise ModelConfigurationError("no model artifact found")
    try:
        with open(resolved, encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise ModelValidationError(f"malformed JSON in {resolved}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ModelConfigurationError(f"cannot read {resolved}: {e}") from e
    model = parse_model(payload, source_path=str(resolved))
    logger.info(
        "model_loader_loaded",
        path=str(resolved),
        architecture=list(model.architecture),
        quantization=model.quantization,
        total_weights=model.total_weights,
        accuracy=model.accuracy,
    )
    return model


def try_load_model(path: str | Path | None = None) -> LoadedModel | None:
    """Load the artifact; on any failure log and return None (caller runs rule-based)."""
    resolved = resolve_model_path(path)
    if resolved is None:
        logger.info("model_loader_no_artifact", fallbacks=[str(p) for p in FALLBACK_MODEL_PATHS])
        return None
    try:
        return load_model(resolved)
    except ModelConfigurationError as e:
        logger.warning("model_loader_unreadable", path=str(resolved), error=str(e))
        return None
    except ModelValidationError as e:
        logger.warning("model_loader_invalid", path=str(resolved), error=str(e))
        return None
    except Exception as e:
        logger.warning("model_loader_failed", path=str(resolved), error=str(e), error_type=type(e).__name__)
        return None


def export_model(
    layers: Sequence[Layer],
    accuracy: float,
    trained_on: int,
    trained_at: str,
    include_feature_names: bool = True,
) -> dict[str, Any]:
    """Serialize layers into the artifact dict (inverse of parse_model)."""
    if not layers:
        raise ValueError("at least one layer required")
    quantization = layers[0].quantization
    architecture = [layers[0].cols] + [layer.rows for layer in layers]
    payload: dict[str, Any] = {
        "version": 1,
        "architecture": architecture,
        "quantization": quantization,
        "weights": {},
        "biases": {},
        "classes": list(CLASS_LABELS),
        "featureCount": FEATURE_COUNT,
        "accuracy": accuracy,
        "trainedOn": trained_on,
        "trainedAt": trained_at,
    }
    if include_feature_names:
        payload["featureNames"] = list(FEATURE_NAMES)
    for idx, layer in enumerate(layers):
        key = f"layer{idx + 1}"
        flat = layer.weights.reshape(-1)
        if quantization == QUANTIZATION_TERNARY:
            payload["weights"][key] = [int(w) for w in flat]
        else:
            payload["weights"][key] = [float(w) for w in flat]
        payload["biases"][key] = [float(b) for b in layer.bias]
    return payload
