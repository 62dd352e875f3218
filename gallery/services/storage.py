import re
import secrets
import time
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from gallery.models.upload import StoredImage
from gallery.validators.upload import ALLOWED_EXTENSIONS

SAFE_NAME = re.compile(r"^[\w-]+(?:\.[\w-]+)*$")
URL_PREFIX = "/uploads"


class InvalidFilename(ValueError):
    pass


def is_safe_name(name: str) -> bool:
    return bool(SAFE_NAME.fullmatch(name))


class ImageStore:
    """Local directory holding uploaded images, named by `generate_name`."""

    def __init__(self, root: Path, max_name_attempts: int = 5) -> None:
        self.root = Path(root)
        self.max_name_attempts = max_name_attempts

    def ensure_directory(self) -> Path:
        if not self.root.exists():
            logger.info("Creating upload directory path={}", str(self.root))
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    @staticmethod
    def generate_name(extension: str) -> str:
        millis = time.time_ns() // 1_000_000
        return f"{millis}-{secrets.randbelow(10**12)}{extension.lower()}"

    @staticmethod
    def url_for(name: str) -> str:
        return f"{URL_PREFIX}/{name}"

    def path_for(self, name: str) -> Path:
        if not is_safe_name(name):
            raise InvalidFilename(f"Invalid filename: {name}")
        return self.root / name

    def put(self, data: bytes, extension: str) -> str:
        self.ensure_directory()
        for _ in range(self.max_name_attempts):
            name = self.generate_name(extension)
            try:
                with open(self.root / name, "xb") as handle:
                    handle.write(data)
            except FileExistsError:
                logger.warning("Generated name collided; retrying name={}", name)
                continue
            logger.debug("File saved name={} size_bytes={}", name, len(data))
            return name
        raise FileExistsError(f"Could not allocate a unique name after {self.max_name_attempts} attempts")

    def list_images(self) -> list[StoredImage]:
        if not self.root.exists():
            return []

        images: list[StoredImage] = []
        for entry in self.root.iterdir():
            suffix = entry.suffix.lower()
            if suffix not in ALLOWED_EXTENSIONS:
                continue
            try:
                if not entry.is_file():
                    continue
                stat = entry.stat()
            except FileNotFoundError:
                # deleted between enumeration and stat
                continue
            images.append(
                StoredImage(
                    filename=entry.name,
                    url=self.url_for(entry.name),
                    size=stat.st_size,
                    modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    mimetype=ALLOWED_EXTENSIONS[suffix],
                )
            )
        # stable sort: equal mtimes keep directory enumeration order
        images.sort(key=lambda image: image.modified, reverse=True)
        return images

    def delete(self, name: str) -> bool:
        path = self.path_for(name)
        if not path.is_file():
            logger.debug("Delete target missing name={}", name)
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("File deleted name={}", name)
        return True

    def remove(self, name: str) -> None:
        self.path_for(name).unlink(missing_ok=True)
