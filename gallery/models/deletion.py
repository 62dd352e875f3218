from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DeletionStatus(str, Enum):
    SUCCESS = "success"
    INVALID_NAME = "invalid_name"
    NOT_FOUND = "not_found"
    ERROR = "error"


class DeleteBatchRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    images_to_delete: list[Any] = Field(default_factory=list, alias="imagesToDelete")


class DeletionDetail(BaseModel):
    filename: str
    status: DeletionStatus
    message: str | None = None


class DeletionSummary(BaseModel):
    success: bool
    deleted: int
    total: int
    details: list[DeletionDetail]
    error: str | None = None
