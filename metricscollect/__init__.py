"""Metrics collection agent and server."""

__version__ = "0.1.0"