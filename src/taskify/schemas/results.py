"""Pydantic schemas for store acknowledgements and user writes.

Learn: Task and user bodies are free-form, so they stay plain dicts.
Only the envelopes the backend itself produces get a schema. Fields are
snake_case in Python and camelCase on the wire (FastAPI serializes
response models by alias).
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _StoreResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    acknowledged: bool = True


class InsertResult(_StoreResult):
    inserted_id: str = Field(alias="insertedId")


class UpdateResult(_StoreResult):
    matched_count: int = Field(alias="matchedCount")
    modified_count: int = Field(alias="modifiedCount")


class DeleteResult(_StoreResult):
    deleted_count: int = Field(alias="deletedCount")


class UserWrite(BaseModel):
    """Response to POST /users. The message tells new from existing."""
    message: str
    user: dict[str, Any]
