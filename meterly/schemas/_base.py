"""Shared model configuration for schemas.

Schemas are stored in the key-value store and served over HTTP in the same
camelCase form as the event wire format.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model with camelCase aliases; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_item(self) -> dict:
        """Serialize for the key-value store."""
        return self.model_dump(mode="json", by_alias=True)
