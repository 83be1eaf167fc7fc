"""
Shared compute infrastructure for pyflip.

IMPORTANT: This is NOT where procedure backends live. Those go in
permutation/backends/. This module contains shared utilities.

Submodules:
    timing: Execution timing utilities
"""

from pyflip.core.compute.timing import Timer, timed

__all__ = [
    "Timer",
    "timed",
]
