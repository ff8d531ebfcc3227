"""
Receipt Image Preparation

Checks raw receipt bytes before they are sent to the AI gateway.

Flow:
1. Reject empty or oversized uploads
2. Open with PIL and reject anything that is not a supported image
3. Flag images too small to read, too dark or washed out
4. Return the mime type and dimensions the gateway needs

DESIGN DECISION: We use simple histogram heuristics rather than ML-based
quality assessment. They are fast, predictable and good enough to catch a
photo that would obviously fail extraction.
"""

from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field

from zenith.config import AppSettings, get_settings
from zenith.errors import InvalidInputError


MIME_TYPES = {
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


class PreparedReceipt(BaseModel):
    """A receipt image that passed the checks."""

    data: bytes
    mime_type: str
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    quality_issues: list[str] = Field(
        default_factory=list,
        description="Non-blocking issues worth showing the user"
    )


class ReceiptImageService:
    """Validates receipt uploads with PIL."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _assess_lighting(self, img: Image.Image) -> list[str]:
        """Histogram checks for very dark or overexposed photos."""
        issues = []
        gray = img if img.mode == "L" else img.convert("L")
        histogram = gray.histogram()
        total_pixels = sum(histogram) or 1

        if sum(histogram[:50]) / total_pixels > 0.7:
            issues.append("Image is very dark - please take photo in better lighting")
        if sum(histogram[200:]) / total_pixels > 0.7:
            issues.append("Image is overexposed - please reduce lighting or angle")
        return issues

    def prepare(self, image_bytes: bytes) -> PreparedReceipt:
        """
        Validate a receipt upload.

        Raises:
            InvalidInputError: empty, too large, unreadable, unsupported
                               format, or too small to read
        """
        if not image_bytes:
            raise InvalidInputError("Receipt image is empty", field="image")

        if len(image_bytes) > self._settings.max_receipt_size_bytes:
            raise InvalidInputError(
                f"Receipt image exceeds {self._settings.max_receipt_size_mb} MB",
                field="image",
            )

        try:
            img = Image.open(BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise InvalidInputError(f"Could not read receipt image: {e}", field="image") from e

        image_format = (img.format or "").lower()
        if image_format not in self._settings.supported_formats_list or image_format not in MIME_TYPES:
            raise InvalidInputError(
                f"Unsupported image format: {image_format or 'unknown'}. "
                f"Allowed: {', '.join(self._settings.supported_formats_list)}",
                field="image",
            )

        width, height = img.size
        if min(width, height) < self._settings.min_receipt_dimension:
            raise InvalidInputError(
                f"Receipt image too small to read (minimum {self._settings.min_receipt_dimension}px "
                "on smallest side)",
                field="image",
            )

        return PreparedReceipt(
            data=image_bytes,
            mime_type=MIME_TYPES[image_format],
            width=width,
            height=height,
            quality_issues=self._assess_lighting(img),
        )
