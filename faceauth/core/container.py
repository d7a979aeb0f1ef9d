"""Service container for dependency injection."""
from typing import Optional

from faceauth.core.config import settings
from faceauth.domain.interfaces.storage.template_store import TemplateStore
from faceauth.infrastructure.storage import InMemoryTemplateStore, JsonFileTemplateStore
from faceauth.services.face_auth import FaceAuthService
from faceauth.services.match_engine import MatchEngine
from faceauth.services.template_builder import TemplateBuilder


def build_template_store() -> TemplateStore:
    """Create the template store selected by TEMPLATE_STORE_BACKEND."""
    if settings.TEMPLATE_STORE_BACKEND == "memory":
        return InMemoryTemplateStore(model_version=settings.MODEL_VERSION)
    return JsonFileTemplateStore(settings.TEMPLATE_STORE_DIR, model_version=settings.MODEL_VERSION)


class ServiceContainer:
    """Container for engine services.

    Wires the template store, builder, match engine and the caller-facing
    service from settings, so that wrappers (CLI, HTTP, UI) share one set.

    Example:
        ```python
        container = ServiceContainer()
        container.initialize()
        service = container.face_auth_service
        ```
    """

    def __init__(self) -> None:
        """Initialize empty container."""
        self.template_store: Optional[TemplateStore] = None
        self.template_builder: Optional[TemplateBuilder] = None
        self.match_engine: Optional[MatchEngine] = None
        self.face_auth_service: Optional[FaceAuthService] = None

    def initialize(self, store: Optional[TemplateStore] = None) -> None:
        """Initialize all services in the correct order."""
        self.template_store = store or build_template_store()
        self.template_builder = TemplateBuilder()
        self.match_engine = MatchEngine()
        self.face_auth_service = FaceAuthService(
            store=self.template_store,
            builder=self.template_builder,
            engine=self.match_engine,
        )

    def cleanup(self) -> None:
        """Drop service references in reverse order of initialization."""
        self.face_auth_service = None
        self.match_engine = None
        self.template_builder = None
        self.template_store = None


# Global container instance
container = ServiceContainer()
