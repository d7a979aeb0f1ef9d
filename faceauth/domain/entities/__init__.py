"""Domain entities package."""
from .face import BoundingBox, QualityMetadata, Sample, as_descriptor
from .template import Template

__all__ = ["BoundingBox", "QualityMetadata", "Sample", "Template", "as_descriptor"]
