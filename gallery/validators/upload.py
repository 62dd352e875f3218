from pathlib import Path

from loguru import logger
from PIL import Image, UnidentifiedImageError

from gallery.models.upload import ValidationResult
from gallery.validators.common import accepted, rejected

ALLOWED_EXTENSIONS: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
ALLOWED_TYPES: list[str] = sorted(set(ALLOWED_EXTENSIONS.values()))

# decoders Pillow may try when sniffing
OPEN_FORMATS: tuple[str, ...] = ("JPEG", "PNG", "GIF", "WEBP")

# Pillow format name -> MIME type; the JPEG decoder reports multi-picture files as MPO
SNIFF_FORMATS: dict[str, str] = {
    "JPEG": "image/jpeg",
    "MPO": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


def normalize_extension(filename: str | None) -> str:
    return Path(filename or "").suffix.lower()


def check_declared(filename: str | None, content_type: str | None, size: int, max_bytes: int) -> ValidationResult:
    """Validate what the client claims about an upload before it is written.

    Extension and declared MIME type must both be on the allow-list; a renamed
    file with a mismatched declared type is caught by one check or the other.
    """
    suffix = normalize_extension(filename)
    declared = (content_type or "").split(";")[0].strip().lower()
    if suffix not in ALLOWED_EXTENSIONS or declared not in ALLOWED_TYPES:
        return rejected("Only JPEG, PNG, GIF and WEBP images are allowed")
    if size <= 0:
        return rejected("Uploaded file is empty")
    if size > max_bytes:
        return rejected(f"File too large; the limit is {max_bytes} bytes")
    return accepted(ALLOWED_EXTENSIONS[suffix])


def sniff_image(path: Path, expected_mimetype: str | None = None) -> ValidationResult:
    """Identify the stored file's real format from its leading bytes.

    When `expected_mimetype` is given, the detected type must agree with it so
    the stored extension never disagrees with the content.
    """
    try:
        with Image.open(path, formats=list(OPEN_FORMATS)) as image:
            detected = image.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        logger.debug("Content sniff failed path={} error={}", str(path), str(exc))
        return rejected("File content is not a recognized image")

    mimetype = SNIFF_FORMATS.get(detected or "")
    if mimetype is None:
        return rejected("File content is not a recognized image")
    if expected_mimetype is not None and mimetype != expected_mimetype:
        return rejected(f"File content is {mimetype}, which does not match its extension")
    return accepted(mimetype)
