"""Base schema for API payloads: snake_case in Python, camelCase on the wire."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for every request/response model exchanged with the portal UI."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(ApiModel):
    """JSON body returned for every handled error."""

    error: str
    reason: str | None = None
    fields: dict[str, str] | None = None
