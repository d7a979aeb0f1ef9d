"""In-memory template store."""
from typing import Dict, Optional, Set

from faceauth.core.config import settings
from faceauth.core.exceptions import (
    EmptyIdentityError,
    ModelVersionMismatchError,
    TemplateNotFoundError,
)
from faceauth.core.logging import get_logger
from faceauth.domain.entities.template import Template
from faceauth.domain.interfaces.storage.template_store import TemplateStore
from faceauth.infrastructure.storage.locks import KeyedLock

logger = get_logger(__name__)


def check_identity(identity: str) -> str:
    if not identity or not identity.strip():
        raise EmptyIdentityError("Identity key must not be blank")
    return identity


def check_template(identity: str, template: Template, model_version: str) -> None:
    """Validate a template before it is written under ``identity``."""
    if template.identity != identity:
        raise ValueError(
            f"Template identity '{template.identity}' does not match key '{identity}'"
        )
    if template.model_version != model_version:
        raise ModelVersionMismatchError(
            "Template was built with a different descriptor model than the store",
            details={
                "identity": identity,
                "template_model_version": template.model_version,
                "store_model_version": model_version,
            },
        )


class InMemoryTemplateStore(TemplateStore):
    """Template store backed by a dict.

    Templates are immutable, so replacing a dict entry is an atomic swap:
    readers see either the old template or the new one.
    """

    def __init__(self, model_version: Optional[str] = None) -> None:
        self.model_version = model_version or settings.MODEL_VERSION
        self._templates: Dict[str, Template] = {}
        self._locks = KeyedLock()

    def put(self, identity: str, template: Template) -> None:
        check_identity(identity)
        check_template(identity, template, self.model_version)
        with self._locks.hold(identity):
            self._templates[identity] = template
        logger.info("Stored template", identity=identity, descriptors=len(template.descriptors))

    def get(self, identity: str) -> Template:
        check_identity(identity)
        template = self._templates.get(identity)
        if template is None:
            raise TemplateNotFoundError(f"No template enrolled for '{identity}'", details={"identity": identity})
        return template

    def delete(self, identity: str) -> None:
        check_identity(identity)
        with self._locks.hold(identity):
            if self._templates.pop(identity, None) is None:
                raise TemplateNotFoundError(f"No template enrolled for '{identity}'", details={"identity": identity})
        logger.info("Deleted template", identity=identity)

    def list(self) -> Set[str]:
        return set(self._templates)

    def clear(self) -> None:
        for identity in set(self._templates):
            with self._locks.hold(identity):
                self._templates.pop(identity, None)
        logger.info("Cleared all templates")
