"""Test helpers shared by unit and integration tests."""

import io
import time
from datetime import datetime, timedelta, timezone

from PIL import Image


def make_image(width: int = 64, height: int = 48, fmt: str = "PNG", mode: str = "RGB") -> bytes:
    """Encode a solid-colour test image."""
    color: tuple[int, ...] = (200, 40, 40, 255) if mode == "RGBA" else (200, 40, 40)
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as image:
        return image.size


def image_format(data: bytes) -> str | None:
    with Image.open(io.BytesIO(data)) as image:
        return image.format


def now_ms() -> int:
    """Current time in milliseconds, as sent in the ``timestamp`` parameter."""
    return int(time.time() * 1000)


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + timedelta(seconds=1)
        return value


class FrozenClock:
    """Clock that always returns the same instant."""

    def __init__(self, instant: datetime | None = None) -> None:
        self.instant = instant or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.instant
