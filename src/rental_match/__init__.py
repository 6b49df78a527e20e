"""Matching, ranking and price fairness engine for a rental marketplace."""

__version__ = "1.0.0"
