from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new Task.

    The text is trimmed here; the emptiness check belongs to the service so
    that an empty value yields a 400 ValidationError rather than a 422.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"text": "Buy milk"}})

    text: Optional[str] = Field(default=None, description="Task text; required, trimmed before storage")

    @model_validator(mode="before")
    @classmethod
    def ignore_non_object_body(cls, data: Any) -> Any:
        # A body that is not a JSON object (form data, raw text) carries no text
        return data if isinstance(data, (dict, BaseModel)) else {}

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a Task.

    Serialized with the wire name "createdAt"; the Python attribute is
    created_at so store entities can be passed straight through.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "6711d3b8a6c0f5e2d4b1c9a0",
                "text": "Buy milk",
                "createdAt": "2025-01-25T10:15:30.123000Z",
            }
        },
    )

    id: str = Field(..., description="Unique identifier of the task")
    text: str = Field(..., description="Task text")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")

    @classmethod
    def from_entity(cls, entity: Any) -> "TaskOut":
        return cls(id=entity["id"], text=entity["text"], created_at=entity["created_at"])


# PUBLIC_INTERFACE
class ErrorOut(BaseModel):
    """Uniform error body used by every non-success API response."""

    error: str = Field(..., description="Error kind, e.g. ValidationError or StorageError")
    message: str = Field(..., description="Client-safe, human-readable message")
