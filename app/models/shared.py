"""
Shared Data Models

This module contains the base class shared by every Firestore document model.
Documents are written by the web client with camelCase field names, so models
expose snake_case attributes backed by camelCase aliases.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class FirestoreBaseModel(BaseModel):
    """Base model for all Firestore documents with common configuration."""

    model_config = ConfigDict(
        # Firestore field names are camelCase
        alias_generator=to_camel,
        # Allow population by field name or alias
        populate_by_name=True,
        # Validate assignments
        validate_assignment=True,
        # Use enum values instead of names
        use_enum_values=True,
    )

    def to_firestore(self, **kwargs: Any) -> Dict[str, Any]:
        """Dump the model using Firestore field names, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, **kwargs)
