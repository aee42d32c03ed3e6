"""Common pydantic configuration for ach models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AchModel(BaseModel):
    """Frozen model that serializes with camelCase field names.

    Dump with ``model_dump(by_alias=True, exclude_none=True)`` to get the
    wire shape consumers expect.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)
