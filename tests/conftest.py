import io
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from gallery.config import Settings
from gallery.main import create_app
from gallery.services.rate_limit import RateLimiter
from gallery.services.storage import ImageStore


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_image_bytes(fmt: str = "PNG", pad_to: int | None = None) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buffer, format=fmt)
    data = buffer.getvalue()
    if pad_to is not None:
        assert len(data) <= pad_to
        data += b"\x00" * (pad_to - len(data))
    return data


def make_mpo_bytes() -> bytes:
    buffer = io.BytesIO()
    first = Image.new("RGB", (8, 8), color=(10, 120, 200))
    second = Image.new("RGB", (8, 8), color=(200, 120, 10))
    first.save(buffer, format="MPO", save_all=True, append_images=[second])
    return buffer.getvalue()


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def app_settings(upload_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        upload_dir=str(upload_dir),
        log_level="WARNING",
        max_upload_bytes=64 * 1024,
        rate_limit_max_requests=5,
        rate_limit_window_seconds=60,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(app_settings: Settings, clock: FakeClock) -> RateLimiter:
    return RateLimiter(
        max_requests=app_settings.rate_limit_max_requests,
        window_seconds=app_settings.rate_limit_window_seconds,
        clock=clock,
    )


@pytest.fixture
def client(app_settings: Settings, limiter: RateLimiter):
    app = create_app(app_settings, rate_limiter=limiter)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def store(upload_dir: Path) -> ImageStore:
    return ImageStore(upload_dir)


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


def upload(client: TestClient, data: bytes, filename: str = "pic.png", content_type: str = "image/png"):
    return client.post("/upload", files={"image": (filename, data, content_type)})
