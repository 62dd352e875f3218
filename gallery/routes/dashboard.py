from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from loguru import logger

from gallery.config import Settings
from gallery.errors import ServerError
from gallery.services.state import get_settings, get_store
from gallery.services.storage import ImageStore
from gallery.validators.upload import ALLOWED_EXTENSIONS

router = APIRouter(tags=["dashboard"])

# autoescape is on, so the status banner cannot inject markup
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


@router.get("/", response_class=HTMLResponse)
@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    success: str | None = None,
    error: str | None = None,
    store: ImageStore = Depends(get_store),
    app_settings: Settings = Depends(get_settings),
) -> HTMLResponse:
    try:
        images = store.list_images()
    except OSError as exc:
        logger.exception("Dashboard listing failed error={}", str(exc))
        raise ServerError() from exc

    logger.debug("Dashboard rendered image_count={}", len(images))
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "title": app_settings.app_name,
            "images": images,
            "success": success,
            "error": error,
            "accept": ",".join(sorted(ALLOWED_EXTENSIONS)),
            "max_upload_mb": round(app_settings.max_upload_bytes / (1024 * 1024), 1),
        },
    )
