"""Custom exceptions for the face authentication engine.

Every failure here means "could not attempt a comparison". None of them are
fatal; callers retry enrollment or verification and branch on the type (or
on ``code`` when the error crosses a serialization boundary).
"""
from typing import Optional


class FaceAuthError(Exception):
    """Base exception for enrollment and verification operations."""

    code: str = "face_auth_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize face auth error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        """Structured form for logs and transports."""
        return {"code": self.code, "message": str(self), "details": self.details}


class EmptyIdentityError(FaceAuthError):
    """Raised when the identity key is empty or whitespace only."""
    code = "empty_identity"


class InsufficientSamplesError(FaceAuthError):
    """Raised when fewer usable enrollment samples were captured than required."""
    code = "insufficient_samples"


class EnrollmentUnstableError(FaceAuthError):
    """Raised when too many enrollment samples are rejected as outliers."""
    code = "enrollment_unstable"


class TemplateNotFoundError(FaceAuthError):
    """Raised when no template is enrolled for the requested identity."""
    code = "not_found"


class ModelVersionMismatchError(FaceAuthError):
    """Raised when descriptors from different extraction models are compared or loaded."""
    code = "model_version_mismatch"


class InvalidDescriptorError(FaceAuthError):
    """Raised when a descriptor is empty, non-finite, or has an incompatible length."""
    code = "invalid_descriptor"


class IncompatibleTemplateError(FaceAuthError):
    """Raised when a persisted template record has an unsupported schema or is corrupt."""
    code = "incompatible_template"


class SessionError(FaceAuthError):
    """Base exception for verification session lifecycle errors."""
    code = "session_error"


class SessionNotStartedError(SessionError):
    """Raised when a session is used before start()."""
    code = "session_not_started"


class SessionClosedError(SessionError):
    """Raised when a completed or cancelled session is used again."""
    code = "session_closed"


class SessionBudgetExhaustedError(SessionError):
    """Raised when a sample is submitted after the frame or time budget ran out."""
    code = "session_budget_exhausted"


class NoFaceDetectedError(InsufficientSamplesError):
    """Raised when none of the enrollment frames contained a face."""
    code = "no_face_detected"


class InvalidImageError(FaceAuthError):
    """Raised when a frame is invalid or cannot be decoded."""
    code = "invalid_image"
