# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


class BaseEntity(BaseModel):
    """Base entity with common fields for all stored documents.

    Field names are snake_case in Python and camelCase in MongoDB; documents
    are read with ``from_document`` and written with ``to_document``.
    """

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        # Validate assignment
        validate_assignment=True,
        # Arbitrary types allowed
        arbitrary_types_allowed=True
    )

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(
        default_factory=datetime.utcnow, alias="createdAt", description="Creation timestamp"
    )

    @classmethod
    def from_document(cls, document: Dict[str, Any]):
        """Build an entity from a MongoDB document (``_id`` or ``id``)."""
        data = dict(document)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to a MongoDB document keyed by ``_id``."""
        document = self.model_dump(by_alias=True)
        document["_id"] = ObjectId(document.pop("id"))
        return document

    def to_response(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dictionary for API responses."""
        return self.model_dump(by_alias=True, mode="json")


class ValueObject(BaseModel):
    """Immutable value copied into other documents (denormalized snapshot)."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True
    )
