from .descriptor_source import DescriptorSource

__all__ = ["DescriptorSource"]
