from fastapi import APIRouter, Depends, Request
from loguru import logger
from starlette.datastructures import UploadFile

from gallery.config import Settings
from gallery.errors import ApiError, ServerError
from gallery.models.upload import UploadResponse
from gallery.services.state import enforce_upload_rate_limit, get_settings, get_store
from gallery.services.storage import ImageStore
from gallery.validators.upload import ALLOWED_TYPES, check_declared, normalize_extension, sniff_image

router = APIRouter(prefix="/upload", tags=["upload"])

FIELD_NAME = "image"
# room for multipart boundaries and part headers on top of the file itself
MULTIPART_OVERHEAD = 16 * 1024


def _rejection(reason: str | None) -> ApiError:
    return ApiError(400, reason or "Invalid upload", extra={"allowedTypes": ALLOWED_TYPES})


def _declared_length(request: Request) -> int | None:
    try:
        return int(request.headers["content-length"])
    except (KeyError, ValueError):
        return None


@router.post(
    "",
    status_code=201,
    response_model=UploadResponse,
    dependencies=[Depends(enforce_upload_rate_limit)],
)
async def upload_image(
    request: Request,
    store: ImageStore = Depends(get_store),
    app_settings: Settings = Depends(get_settings),
) -> UploadResponse:
    body_limit = app_settings.max_upload_bytes + MULTIPART_OVERHEAD
    body_length = _declared_length(request)
    if body_length is not None and body_length > body_limit:
        logger.warning("Upload rejected before parsing content_length={} limit={}", body_length, body_limit)
        raise _rejection(f"Request body too large; the limit is {app_settings.max_upload_bytes} bytes")

    async with request.form() as form:
        files = [item for item in form.getlist(FIELD_NAME) if isinstance(item, UploadFile)]
        if not files:
            raise ApiError(400, "No file uploaded")
        if len(files) > 1:
            raise ApiError(400, "Only one file may be uploaded per request")

        upload = files[0]
        # one byte past the limit is enough to know it is too large
        data = await upload.read(app_settings.max_upload_bytes + 1)
        filename = upload.filename
        content_type = upload.content_type

    logger.info("Upload request filename={} content_type={} size_bytes={}", filename, content_type, len(data))

    declared = check_declared(filename, content_type, len(data), app_settings.max_upload_bytes)
    if not declared.accepted:
        logger.warning(
            "Upload rejected filename={} content_type={} reason={}",
            filename,
            content_type,
            declared.reason,
        )
        raise _rejection(declared.reason)

    try:
        name = store.put(data, normalize_extension(filename))
        sniffed = sniff_image(store.path_for(name), expected_mimetype=declared.mimetype)
        if not sniffed.accepted:
            store.remove(name)
    except OSError as exc:
        logger.exception("Upload storage failed filename={} error={}", filename, str(exc))
        raise ServerError() from exc

    if not sniffed.accepted:
        logger.warning(
            "Upload rejected after content sniff filename={} stored_as={} reason={}",
            filename,
            name,
            sniffed.reason,
        )
        raise _rejection(sniffed.reason)

    logger.info(
        "Upload stored filename={} stored_as={} mimetype={} size_bytes={}",
        filename,
        name,
        sniffed.mimetype,
        len(data),
    )
    return UploadResponse(
        filename=name,
        url=store.url_for(name),
        size=len(data),
        mimetype=sniffed.mimetype,
    )
