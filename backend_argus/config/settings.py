"""
Typed classifier settings assembled from environment variables.

Responsibilities:
- Resolve every ARGUS_* variable once into a frozen dataclass.
- Let tests and hosts build ClassifierSettings directly without touching the environment.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_argus.config.env import (
    DEFAULT_METRICS_TIMEOUT_SEC,
    collapse_fallback_enabled,
    eager_load_enabled,
    get_metrics_timeout_sec,
    get_metrics_url,
    get_model_path,
)


@dataclass(frozen=True)
class ClassifierSettings:
    """Settings consumed by TokenRiskClassifier."""

    model_path: str | None = None
    metrics_url: str | None = None
    metrics_timeout_sec: float = DEFAULT_METRICS_TIMEOUT_SEC
    collapse_fallback: bool = False
    eager_load: bool = False


def get_settings() -> ClassifierSettings:
    """
    Return the current classifier settings.

    Reads ARGUS_MODEL_PATH, ARGUS_METRICS_URL, ARGUS_METRICS_TIMEOUT_SEC,
    ARGUS_COLLAPSE_FALLBACK and ARGUS_EAGER_LOAD (after loading .env).
    """
    return ClassifierSettings(
        model_path=get_model_path(),
        metrics_url=get_metrics_url(),
        metrics_timeout_sec=get_metrics_timeout_sec(),
        collapse_fallback=collapse_fallback_enabled(),
        eager_load=eager_load_enabled(),
    )
