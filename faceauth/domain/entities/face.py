"""Core face domain entities."""
from typing import Optional, Sequence, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from faceauth.core.exceptions import InvalidDescriptorError

DescriptorLike = Union[np.ndarray, Sequence[float]]


def as_descriptor(values: DescriptorLike) -> np.ndarray:
    """Convert raw model output into an immutable descriptor.

    Args:
        values: 1-D sequence of floats produced by the descriptor model

    Returns:
        Read-only float64 vector

    Raises:
        InvalidDescriptorError: If the vector is empty, not 1-D, or has non-finite values
    """
    try:
        vec = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidDescriptorError(f"Descriptor is not numeric: {e}")

    if vec.ndim != 1 or vec.size == 0:
        raise InvalidDescriptorError(
            "Descriptor must be a non-empty 1-D vector",
            details={"shape": list(vec.shape)},
        )
    if not np.all(np.isfinite(vec)):
        raise InvalidDescriptorError("Descriptor contains NaN or infinite values")

    vec.setflags(write=False)
    return vec


class BoundingBox(BaseModel):
    """Face bounding box coordinates, normalized to the frame (0-1)."""
    left: float = Field(..., description="Left coordinate of the bounding box")
    top: float = Field(..., description="Top coordinate of the bounding box")
    width: float = Field(..., description="Width of the bounding box")
    height: float = Field(..., description="Height of the bounding box")

    @property
    def area(self) -> float:
        return self.width * self.height


class QualityMetadata(BaseModel):
    """Detector quality information attached to a sample."""
    detection_score: float = Field(1.0, description="Detector confidence (0-1)")
    bounding_box: Optional[BoundingBox] = Field(None, description="Where the face was found")


class Sample(BaseModel):
    """One descriptor captured during an enrollment or verification attempt.

    Samples are ephemeral; only templates built from them are persisted. A
    frame in which no face was found is represented by ``None`` in a sample
    stream, never by a Sample.
    """
    descriptor: np.ndarray = Field(..., description="Face descriptor vector")
    model_version: str = Field(..., description="Version tag of the model that produced the descriptor")
    quality: QualityMetadata = Field(default_factory=QualityMetadata, description="Detection quality")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("descriptor", mode="before")
    @classmethod
    def validate_descriptor(cls, v: DescriptorLike) -> np.ndarray:
        """Validate and convert descriptor to a read-only numpy array."""
        return as_descriptor(v)

    @property
    def dimension(self) -> int:
        return int(self.descriptor.shape[0])
