"""Enrolled identity template entity."""
from datetime import datetime, timezone
from typing import Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from faceauth.core.exceptions import EmptyIdentityError, InvalidDescriptorError
from faceauth.domain.entities.face import as_descriptor


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Template(BaseModel):
    """One identity's reference representation.

    Holds one descriptor in single-template mode, or several in multi-template
    mode (pose/lighting robustness). Templates are immutable: re-enrollment
    builds a new one and replaces the stored record as a whole.
    """
    identity: str = Field(..., description="Unique identity key")
    descriptors: Tuple[np.ndarray, ...] = Field(..., description="Reference descriptors")
    model_version: str = Field(..., description="Descriptor model version the template was built with")
    created_at: datetime = Field(default_factory=_utcnow, description="When the template was built")
    sample_count: int = Field(..., ge=1, description="Number of samples the template was built from")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("identity")
    @classmethod
    def validate_identity(cls, v: str) -> str:
        if not v or not v.strip():
            raise EmptyIdentityError("Identity key must not be blank")
        return v

    @field_validator("descriptors", mode="before")
    @classmethod
    def validate_descriptors(cls, v) -> Tuple[np.ndarray, ...]:
        """Convert every stored descriptor to a read-only numpy array."""
        if isinstance(v, np.ndarray) and v.ndim == 1:
            v = [v]
        return tuple(as_descriptor(d) for d in v)

    @model_validator(mode="after")
    def check_descriptor_lengths(self) -> "Template":
        if not self.descriptors:
            raise InvalidDescriptorError(
                "Template must hold at least one descriptor",
                details={"identity": self.identity},
            )
        lengths = {int(d.shape[0]) for d in self.descriptors}
        if len(lengths) != 1:
            raise InvalidDescriptorError(
                "All template descriptors must have the same length",
                details={"identity": self.identity, "lengths": sorted(lengths)},
            )
        return self

    @property
    def dimension(self) -> int:
        return int(self.descriptors[0].shape[0])

    @property
    def is_multi_template(self) -> bool:
        return len(self.descriptors) > 1
