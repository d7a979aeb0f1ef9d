"""Service interfaces package."""
from .recognition import DescriptorSource
from .storage import TemplateStore

__all__ = ["DescriptorSource", "TemplateStore"]
