"""Matching and verification value objects."""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Decision(str, Enum):
    """Outcome of a comparison or of a whole verification session."""
    VERIFIED = "verified"
    UNCERTAIN = "uncertain"
    NOT_VERIFIED = "not_verified"
    # Only produced by a session in which no frame contained a face
    NO_FACE_DETECTED = "no_face_detected"


class VotingRule(str, Enum):
    """How per-frame decisions are aggregated within a session."""
    MAJORITY = "majority"
    CONSECUTIVE = "consecutive"


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SessionEndReason(str, Enum):
    """Why a session stopped accepting frames."""
    FINISHED = "finished"
    DECIDED = "decided"
    FRAME_BUDGET = "frame_budget"
    TIMEOUT = "timeout"


class MatchThresholds(BaseModel):
    """Calibrated distance thresholds.

    distance <= low is Verified, low < distance <= high is Uncertain and
    anything above high is Not Verified.
    """
    low: float = Field(..., ge=0.0, description="Verified threshold (inclusive)")
    high: float = Field(..., description="Uncertain threshold (inclusive)")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_ordering(self) -> "MatchThresholds":
        if not self.low < self.high:
            raise ValueError(f"low threshold ({self.low}) must be below high threshold ({self.high})")
        return self


class MatchResult(BaseModel):
    """Result of scoring one live descriptor against one template."""
    identity: str = Field(..., description="Identity of the template compared against")
    distance: float = Field(..., description="Minimum Euclidean distance over the template's descriptors")
    decision: Decision = Field(..., description="Classification of the distance")
    descriptor_index: int = Field(..., description="Index of the stored descriptor that matched best")
    margin: float = Field(..., description="Distance to the nearest threshold bounding the decision")
    model_version: str = Field(..., description="Descriptor model version used for the comparison")

    model_config = ConfigDict(frozen=True)


class FrameRecord(BaseModel):
    """Audit trail entry for one submitted frame."""
    index: int = Field(..., description="Submission order within the session")
    face_detected: bool = Field(..., description="Whether the frame produced a descriptor")
    distance: Optional[float] = Field(None, description="Best distance, if a face was detected")
    decision: Optional[Decision] = Field(None, description="Per-frame decision, if a face was detected")
    descriptor_index: Optional[int] = Field(None, description="Stored descriptor that matched best")


class FinalDecision(BaseModel):
    """Aggregated outcome of a verification session."""
    identity: str = Field(..., description="Identity that was claimed")
    decision: Decision = Field(..., description="Aggregated decision")
    voting_rule: VotingRule = Field(..., description="Rule used to aggregate frames")
    frames_submitted: int = Field(..., description="Number of frames submitted")
    faces_detected: int = Field(..., description="Number of frames that contained a face")
    end_reason: SessionEndReason = Field(..., description="Why the session stopped")
    best_distance: Optional[float] = Field(None, description="Lowest distance seen over the session")
    frames: List[FrameRecord] = Field(default_factory=list, description="Per-frame trail in submission order")

    @property
    def verified(self) -> bool:
        return self.decision == Decision.VERIFIED
