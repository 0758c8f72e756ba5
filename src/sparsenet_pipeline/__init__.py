"""Annotation helpers for sparse network-regularized Cox regression workflows."""

__version__ = "0.1.0"
