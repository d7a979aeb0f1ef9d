"""Template store interface."""
from abc import ABC, abstractmethod
from typing import Set

from ...entities.template import Template


class TemplateStore(ABC):
    """Interface for persisting enrolled identity templates.

    The store is the only shared mutable state in the engine. Implementations
    allow a single writer per identity key at a time, and readers must never
    observe a partially written template.
    """

    @abstractmethod
    def put(self, identity: str, template: Template) -> None:
        """
        Store a template, atomically replacing any existing one.

        Args:
            identity: Identity key
            template: Template to store; its identity must equal ``identity``

        Raises:
            EmptyIdentityError: If the identity key is blank
            ModelVersionMismatchError: If the template was built with another model
        """
        pass

    @abstractmethod
    def get(self, identity: str) -> Template:
        """
        Load the template for an identity.

        Raises:
            TemplateNotFoundError: If nothing is enrolled under ``identity``
            IncompatibleTemplateError: If the stored record has an unsupported schema
            ModelVersionMismatchError: If the stored record was built with another model
        """
        pass

    @abstractmethod
    def delete(self, identity: str) -> None:
        """
        Delete the template for an identity.

        Raises:
            TemplateNotFoundError: If nothing is enrolled under ``identity``
        """
        pass

    @abstractmethod
    def list(self) -> Set[str]:
        """Return the set of enrolled identity keys."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Delete every stored template."""
        pass
