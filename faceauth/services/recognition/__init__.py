"""Descriptor source adapters and sampling helpers.

The InsightFace adapter is imported from its own module so that the engine
works without the optional ``recognition`` extra installed.
"""
from .sampling import aiterate, capture_samples

__all__ = ["aiterate", "capture_samples"]
