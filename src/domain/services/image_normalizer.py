"""Image normalization for uploaded profile pictures."""

import io
from uuid import uuid4

import structlog
from PIL import Image, UnidentifiedImageError

from core.exceptions import ImageProcessingError
from domain.entities.profile import NormalizedImage

logger = structlog.get_logger()

CANONICAL_FORMAT = "JPEG"
CANONICAL_EXTENSION = ".jpg"
CANONICAL_CONTENT_TYPE = "image/jpeg"


class ImageNormalizer:
    """Decodes, bounds and re-encodes images into one canonical format.

    Every stored image is a baseline JPEG no larger than the configured
    bounding box, with metadata stripped. Images already inside the box
    keep their dimensions.
    """

    def __init__(self, max_width: int = 1024, max_height: int = 1024, quality: int = 85) -> None:
        self._max_size = (max_width, max_height)
        self._quality = quality

    def normalize(self, raw: bytes, original_filename: str | None = None) -> NormalizedImage:
        """Return storage-ready bytes and a freshly generated filename.

        Raises:
            ImageProcessingError: If ``raw`` cannot be decoded or re-encoded
        """
        filename = f"{uuid4().hex}{CANONICAL_EXTENSION}"
        try:
            with Image.open(io.BytesIO(raw)) as source:
                source.load()
                image = source if source.mode == "RGB" else source.convert("RGB")
                # thumbnail() keeps aspect ratio and never enlarges
                image.thumbnail(self._max_size, Image.Resampling.LANCZOS)

                buffer = io.BytesIO()
                image.save(buffer, format=CANONICAL_FORMAT, quality=self._quality, optimize=True)
                width, height = image.size
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            logger.warning(
                "image_normalization_failed",
                original_filename=original_filename,
                error=str(exc),
            )
            raise ImageProcessingError() from exc

        return NormalizedImage(
            filename=filename,
            data=buffer.getvalue(),
            width=width,
            height=height,
        )
