"""Core types and exceptions shared across the classifier."""
