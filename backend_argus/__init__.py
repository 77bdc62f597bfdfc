"""
Backend Argus: fraud-risk classifier for crypto tokens.

Compresses raw token observations into a fixed 29-float fingerprint and scores
it with a quantized (ternary or dense) neural network, falling back to a
deterministic rule-based rubric when no trained model is available.
"""

__version__ = "0.1.0"
