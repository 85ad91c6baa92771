"""Causal Lab: dataset upload, profiling and causal analysis tracking API."""

__version__ = "1.0.0"
