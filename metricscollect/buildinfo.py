"""Build information printed when a command starts."""

from __future__ import annotations

import sys

__all__ = ["BUILD_VERSION", "BUILD_DATE", "BUILD_COMMIT", "print_version"]

BUILD_VERSION = "N/A"
BUILD_DATE = "N/A"
BUILD_COMMIT = "N/A"


def print_version() -> list[str]:
    """Write the build version, date and commit to standard output and return the lines."""
    lines = [
        f"Build version: {BUILD_VERSION}",
        f"Build date: {BUILD_DATE}",
        f"Build commit: {BUILD_COMMIT}",
    ]
    sys.stdout.write("".join(f"{line}\n" for line in lines))
    return lines