"""Persisted template record models.

These models are specific to template persistence and should only be used
within the storage infrastructure layer.
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from faceauth.core.exceptions import (
    FaceAuthError,
    IncompatibleTemplateError,
    ModelVersionMismatchError,
)
from faceauth.domain.entities.template import Template

# Bump on any backward-incompatible change to TemplateRecord
SCHEMA_VERSION = 1


class RecordHeader(BaseModel):
    """Fields read before the full record is validated."""
    schema_version: int = Field(..., description="Record schema version")

    model_config = ConfigDict(extra="ignore")


class TemplateRecord(BaseModel):
    """Versioned template record as written to storage.

    Attributes:
        schema_version: Version of this record layout
        model_version: Descriptor model the template was built with
        identity: Identity key
        descriptors: Reference descriptors as plain float lists
        enrolled_at: When the template was built
        sample_count: Number of samples the template was built from
    """
    schema_version: int = Field(SCHEMA_VERSION, description="Record schema version")
    model_version: str = Field(..., description="Descriptor model version")
    identity: str = Field(..., description="Identity key")
    descriptors: List[List[float]] = Field(..., description="Reference descriptors")
    enrolled_at: datetime = Field(..., description="When the template was built")
    sample_count: int = Field(..., ge=1, description="Samples used to build the template")

    @classmethod
    def from_template(cls, template: Template) -> "TemplateRecord":
        """Create a storage record from a template entity."""
        return cls(
            schema_version=SCHEMA_VERSION,
            model_version=template.model_version,
            identity=template.identity,
            descriptors=[d.tolist() for d in template.descriptors],
            enrolled_at=template.created_at,
            sample_count=template.sample_count,
        )

    def to_template(self) -> Template:
        return Template(
            identity=self.identity,
            descriptors=self.descriptors,
            model_version=self.model_version,
            created_at=self.enrolled_at,
            sample_count=self.sample_count,
        )


def encode_template(template: Template) -> str:
    """Serialize a template into its versioned JSON record."""
    return TemplateRecord.from_template(template).model_dump_json()


def decode_template(
    raw: Union[str, bytes],
    expected_model_version: str,
    expected_identity: Optional[str] = None,
) -> Template:
    """
    Deserialize a versioned JSON record, rejecting incompatible ones.

    Args:
        raw: JSON document
        expected_model_version: Model version live descriptors will come from
        expected_identity: Identity key the record was loaded under, if any

    Returns:
        The stored template

    Raises:
        IncompatibleTemplateError: If the schema is unsupported, the record is
            corrupt, or it belongs to another identity
        ModelVersionMismatchError: If the record was built with another model
    """
    try:
        header = RecordHeader.model_validate_json(raw)
    except ValidationError as e:
        raise IncompatibleTemplateError(
            "Template record is corrupt or unversioned",
            details={"errors": e.error_count()},
        )

    if header.schema_version != SCHEMA_VERSION:
        raise IncompatibleTemplateError(
            f"Unsupported template schema version {header.schema_version}",
            details={"schema_version": header.schema_version, "supported": SCHEMA_VERSION},
        )

    try:
        record = TemplateRecord.model_validate_json(raw)
    except ValidationError as e:
        raise IncompatibleTemplateError(
            "Template record does not match schema",
            details={"schema_version": header.schema_version, "errors": e.error_count()},
        )

    if expected_identity is not None and record.identity != expected_identity:
        raise IncompatibleTemplateError(
            "Template record belongs to another identity",
            details={"identity": expected_identity, "record_identity": record.identity},
        )

    if record.model_version != expected_model_version:
        raise ModelVersionMismatchError(
            "Stored template was built with a different descriptor model",
            details={
                "identity": record.identity,
                "stored_model_version": record.model_version,
                "expected_model_version": expected_model_version,
            },
        )

    try:
        return record.to_template()
    except (FaceAuthError, ValidationError) as e:
        raise IncompatibleTemplateError(
            f"Template record is invalid: {e}",
            details={"identity": record.identity},
        )
