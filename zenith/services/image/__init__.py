"""Image processing services package."""

from zenith.services.image.receipt_image import PreparedReceipt, ReceiptImageService

__all__ = [
    "PreparedReceipt",
    "ReceiptImageService",
]
