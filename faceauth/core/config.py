"""Configuration settings for the face authentication engine."""
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Thresholds are corpus- and camera-dependent, so they are deployment
    configuration rather than constants. The defaults are calibrated for
    128-d face-api descriptors compared by Euclidean distance.

    Attributes:
        MODEL_VERSION: Version tag of the descriptor model in use
        VERIFIED_THRESHOLD: Distance at or below which a frame is Verified
        UNCERTAIN_THRESHOLD: Distance at or below which a frame is Uncertain
        MAX_OUTLIER_DISTANCE: Max distance from the enrollment centroid for a sample to be kept
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
    )

    # Core Settings
    PROJECT_NAME: str = "Face Auth Engine"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Descriptor model
    MODEL_VERSION: str = "face-api/faceRecognitionNet"

    # Matching thresholds (lower distance = more similar)
    VERIFIED_THRESHOLD: float = 0.50
    UNCERTAIN_THRESHOLD: float = 0.58

    # Enrollment Settings
    MIN_ENROLLMENT_SAMPLES: int = 3
    ENROLLMENT_CAPTURE_COUNT: int = 5
    ENROLLMENT_CAPTURE_INTERVAL: float = 0.35  # seconds between captures
    MAX_OUTLIER_DISTANCE: float = 0.6
    MIN_DETECTION_SCORE: float = 0.5
    MULTI_TEMPLATE: bool = False
    MULTI_TEMPLATE_TOP_K: int = 3

    # Verification Session Settings
    SESSION_MAX_FRAMES: int = 10
    SESSION_TIMEOUT_SECONDS: float = 15.0
    SESSION_FRAME_INTERVAL: float = 0.7  # seconds between polled frames
    VOTING_RULE: Literal["majority", "consecutive"] = "consecutive"
    CONSECUTIVE_REQUIRED: int = 2

    # Template Store Settings
    TEMPLATE_STORE_BACKEND: Literal["json", "memory"] = "json"
    TEMPLATE_STORE_DIR: str = ".face_templates"

    # InsightFace descriptor source (optional "recognition" extra)
    INSIGHTFACE_MODEL: str = "buffalo_l"
    MODEL_CACHE_DIR: str = ".model_cache"
    INSIGHTFACE_DET_SIZE: int = 640

settings = Settings()
