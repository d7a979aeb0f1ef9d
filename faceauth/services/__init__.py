"""Engine services."""
from .face_auth import FaceAuthService
from .match_engine import MatchEngine, euclidean_distance
from .template_builder import TemplateBuilder
from .verification_session import VerificationSession

__all__ = [
    "FaceAuthService",
    "MatchEngine",
    "TemplateBuilder",
    "VerificationSession",
    "euclidean_distance",
]
