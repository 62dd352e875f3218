import math

from fastapi import Request
from loguru import logger

from gallery.config import Settings
from gallery.errors import ApiError
from gallery.services.rate_limit import RateLimiter
from gallery.services.storage import ImageStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ImageStore:
    return request.app.state.store


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def enforce_upload_rate_limit(request: Request) -> None:
    limiter = get_rate_limiter(request)
    address = client_address(request)
    decision = limiter.hit(address)
    if decision.allowed:
        return
    logger.warning("Upload rate limited client={} window_seconds={}", address, limiter.window_seconds)
    raise ApiError(
        429,
        "Too many uploads from this address, please try again later.",
        headers={"Retry-After": str(math.ceil(decision.retry_after))},
    )
