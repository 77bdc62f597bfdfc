"""
Argus ML: feature vector contract, extraction, model loading and inference.

Ternary/dense forward pass, first-layer feature importance, pattern matching.
"""

from backend_argus.ml.feature_extractor import extract_compressed, extract_features
from backend_argus.ml.feature_vector import FEATURE_COUNT, FEATURE_NAMES, CompressedFeatures, validate_vector
from backend_argus.ml.inference import InferenceEngine
from backend_argus.ml.model_loader import LoadedModel, load_model, try_load_model

__all__ = [
    "CompressedFeatures",
    "FEATURE_COUNT",
    "FEATURE_NAMES",
    "InferenceEngine",
    "LoadedModel",
    "extract_compressed",
    "extract_features",
    "load_model",
    "try_load_model",
    "validate_vector",
]
