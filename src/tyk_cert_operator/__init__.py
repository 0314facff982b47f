"""Tyk Secret Certificate Operator."""

__version__ = "0.1.0"
