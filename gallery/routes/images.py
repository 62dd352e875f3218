from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from gallery.errors import ApiError, ServerError
from gallery.models.deletion import DeleteBatchRequest, DeletionDetail, DeletionStatus, DeletionSummary
from gallery.models.upload import ImageListing
from gallery.services.state import get_store
from gallery.services.storage import ImageStore, InvalidFilename

router = APIRouter(tags=["images"])


def delete_one(store: ImageStore, filename: Any) -> DeletionDetail:
    if not isinstance(filename, str):
        return DeletionDetail(filename=str(filename), status=DeletionStatus.INVALID_NAME, message="Invalid filename")
    try:
        removed = store.delete(filename)
    except InvalidFilename:
        return DeletionDetail(filename=filename, status=DeletionStatus.INVALID_NAME, message="Invalid filename")
    except OSError as exc:
        logger.exception("Delete failed filename={} error={}", filename, str(exc))
        return DeletionDetail(filename=filename, status=DeletionStatus.ERROR, message="Failed to delete file")
    if not removed:
        return DeletionDetail(filename=filename, status=DeletionStatus.NOT_FOUND, message="File not found")
    return DeletionDetail(filename=filename, status=DeletionStatus.SUCCESS)


@router.get("/images", response_model=ImageListing)
async def list_images(store: ImageStore = Depends(get_store)) -> ImageListing:
    try:
        images = store.list_images()
    except OSError as exc:
        logger.exception("Listing failed error={}", str(exc))
        raise ServerError() from exc
    return ImageListing(count=len(images), images=images)


@router.delete("/image/{filename}")
async def delete_image(filename: str, store: ImageStore = Depends(get_store)) -> dict[str, bool]:
    detail = delete_one(store, filename)
    logger.info("Delete request filename={} status={}", filename, detail.status.value)
    if detail.status == DeletionStatus.INVALID_NAME:
        raise ApiError(400, "Invalid filename")
    if detail.status == DeletionStatus.NOT_FOUND:
        raise ApiError(404, "Image not found")
    if detail.status == DeletionStatus.ERROR:
        raise ApiError(500, "Failed to delete")
    return {"success": True}


@router.post("/delete")
async def delete_images(request: DeleteBatchRequest, store: ImageStore = Depends(get_store)) -> JSONResponse:
    if not request.images_to_delete:
        raise ApiError(400, "No images selected for deletion")

    details = [delete_one(store, filename) for filename in request.images_to_delete]
    deleted = sum(1 for d in details if d.status == DeletionStatus.SUCCESS)
    total = len(details)
    logger.info(
        "Batch delete finished deleted={} total={} invalid={} not_found={} errors={}",
        deleted,
        total,
        sum(1 for d in details if d.status == DeletionStatus.INVALID_NAME),
        sum(1 for d in details if d.status == DeletionStatus.NOT_FOUND),
        sum(1 for d in details if d.status == DeletionStatus.ERROR),
    )

    summary = DeletionSummary(
        success=deleted > 0,
        deleted=deleted,
        total=total,
        details=details,
        error=None if deleted else "No images were deleted",
    )
    return JSONResponse(
        status_code=200 if summary.success else 400,
        content=summary.model_dump(mode="json", exclude_none=True),
    )
