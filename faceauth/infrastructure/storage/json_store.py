"""JSON file template store.

Each identity is stored as one versioned JSON record in a directory. Writes
go to a temporary file in the same directory and are moved into place with
``os.replace``, so a reader sees either the previous record or the new one,
never a partial file.
"""
import os
import tempfile
from pathlib import Path
from typing import Optional, Set, Union
from urllib.parse import quote, unquote

from faceauth.core.config import settings
from faceauth.core.exceptions import FaceAuthError, TemplateNotFoundError
from faceauth.core.logging import get_logger
from faceauth.domain.entities.template import Template
from faceauth.domain.interfaces.storage.template_store import TemplateStore
from faceauth.infrastructure.storage.locks import KeyedLock
from faceauth.infrastructure.storage.memory import check_identity, check_template
from faceauth.infrastructure.storage.models import decode_template, encode_template

logger = get_logger(__name__)

RECORD_SUFFIX = ".json"


class JsonFileTemplateStore(TemplateStore):
    """Template store backed by one JSON file per identity.

    Example:
        ```python
        store = JsonFileTemplateStore(".face_templates")
        store.put("alice", template)
        store.get("alice")
        ```
    """

    def __init__(
        self,
        directory: Union[str, Path, None] = None,
        model_version: Optional[str] = None,
    ) -> None:
        """Initialize the store.

        Args:
            directory: Directory holding the records; created if missing
            model_version: Model version records must match to be loaded
        """
        self.directory = Path(directory or settings.TEMPLATE_STORE_DIR)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.model_version = model_version or settings.MODEL_VERSION
        self._locks = KeyedLock()

    def _path_for(self, identity: str) -> Path:
        return self.directory / f"{quote(identity, safe='')}{RECORD_SUFFIX}"

    def put(self, identity: str, template: Template) -> None:
        check_identity(identity)
        check_template(identity, template, self.model_version)
        payload = encode_template(template)
        target = self._path_for(identity)

        with self._locks.hold(identity):
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=".part")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

        logger.info(
            "Stored template",
            identity=identity,
            path=str(target),
            descriptors=len(template.descriptors),
        )

    def get(self, identity: str) -> Template:
        check_identity(identity)
        path = self._path_for(identity)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise TemplateNotFoundError(f"No template enrolled for '{identity}'", details={"identity": identity})

        try:
            return decode_template(raw, self.model_version, expected_identity=identity)
        except FaceAuthError as e:
            logger.error(
                "Rejected stored template",
                identity=identity,
                path=str(path),
                error=str(e),
                code=e.code,
            )
            raise

    def delete(self, identity: str) -> None:
        check_identity(identity)
        with self._locks.hold(identity):
            try:
                self._path_for(identity).unlink()
            except FileNotFoundError:
                raise TemplateNotFoundError(f"No template enrolled for '{identity}'", details={"identity": identity})
        logger.info("Deleted template", identity=identity)

    def list(self) -> Set[str]:
        return {unquote(p.name[: -len(RECORD_SUFFIX)]) for p in self.directory.glob(f"*{RECORD_SUFFIX}")}

    def clear(self) -> None:
        for identity in self.list():
            with self._locks.hold(identity):
                self._path_for(identity).unlink(missing_ok=True)
        logger.info("Cleared all templates", directory=str(self.directory))
