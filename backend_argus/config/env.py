"""
Environment variable loading for the Argus risk classifier.

- ARGUS_MODEL_PATH: trained model artifact (JSON); fallbacks are tried when unset/missing
- ARGUS_METRICS_URL: optional endpoint receiving a best-effort POST after each classification
- ARGUS_METRICS_TIMEOUT_SEC: timeout for that POST (default 2.0)
- ARGUS_COLLAPSE_FALLBACK: 1 = run the quantization-collapse check at load and fall back on collapse
- ARGUS_EAGER_LOAD: 1 = load the model at construction instead of on first classification
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

# Project root: config is backend_argus/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_METRICS_TIMEOUT_SEC = 2.0

_TRUTHY = ("1", "true", "yes", "on")


def load_argus_env() -> None:
    """Load .env from project root. Safe to call multiple times."""
    from dotenv import load_dotenv

    load_dotenv(_ENV_PATH)


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in _TRUTHY


def get_model_path() -> str | None:
    """Return ARGUS_MODEL_PATH, or None when unset (fallback paths are tried)."""
    load_argus_env()
    raw = (os.getenv("ARGUS_MODEL_PATH") or "").strip()
    return raw or None


def get_metrics_url() -> str | None:
    """Return ARGUS_METRICS_URL, or None when metrics reporting is disabled."""
    load_argus_env()
    raw = (os.getenv("ARGUS_METRICS_URL") or "").strip()
    return raw or None


def get_metrics_timeout_sec() -> float:
    """Return ARGUS_METRICS_TIMEOUT_SEC as float; invalid values use the default."""
    load_argus_env()
    raw = (os.getenv("ARGUS_METRICS_TIMEOUT_SEC") or "").strip()
    if not raw:
        return DEFAULT_METRICS_TIMEOUT_SEC
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_METRICS_TIMEOUT_SEC
    return value if value > 0 else DEFAULT_METRICS_TIMEOUT_SEC


def collapse_fallback_enabled() -> bool:
    """Return True if ARGUS_COLLAPSE_FALLBACK is set."""
    load_argus_env()
    return _env_flag("ARGUS_COLLAPSE_FALLBACK")


def eager_load_enabled() -> bool:
    """Return True if ARGUS_EAGER_LOAD is set."""
    load_argus_env()
    return _env_flag("ARGUS_EAGER_LOAD")
