"""Helpers for preparing request bodies."""

from __future__ import annotations

import gzip

__all__ = ["compress"]


def compress(data: bytes) -> bytes:
    """Return ``data`` compressed as a gzip stream."""
    return gzip.compress(bytes(data))