"""Descriptor source interface."""
from abc import ABC, abstractmethod
from typing import Any, Optional

from ...entities.face import Sample


class DescriptorSource(ABC):
    """Interface for the external face detection / descriptor extraction model.

    The engine never looks inside a frame; it only consumes the samples a
    source produces. Every sample must carry the source's model version so
    that templates and live comparisons can be checked for compatibility.
    """

    @property
    @abstractmethod
    def model_version(self) -> str:
        """Version tag recorded with every sample this source produces."""
        pass

    @abstractmethod
    async def detect(self, frame: Any) -> Optional[Sample]:
        """
        Detect a single face in a frame and extract its descriptor.

        Args:
            frame: A video frame or still image in the source's native format

        Returns:
            The sample for the most prominent face, or None if no face was found

        Raises:
            InvalidImageError: If the frame cannot be decoded
        """
        pass
