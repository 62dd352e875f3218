from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class ValidationStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ValidationResult(BaseModel):
    status: ValidationStatus
    mimetype: str | None = None
    reason: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status == ValidationStatus.ACCEPTED


class StoredImage(BaseModel):
    filename: str
    url: str
    size: int
    modified: datetime
    mimetype: str


class UploadResponse(BaseModel):
    success: bool = True
    filename: str
    url: str
    size: int
    mimetype: str


class ImageListing(BaseModel):
    count: int
    images: list[StoredImage]
