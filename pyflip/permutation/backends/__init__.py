"""Computational backends for permutation inference."""

from pyflip.permutation.backends.cpu import CPUTwoSampleBackend

__all__ = ["CPUTwoSampleBackend"]
