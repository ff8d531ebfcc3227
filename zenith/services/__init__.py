"""Services package."""

from zenith.services.image import PreparedReceipt, ReceiptImageService
from zenith.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    StorageError,
)

__all__ = [
    # Image services
    "PreparedReceipt",
    "ReceiptImageService",
    # Storage services
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "StorageError",
]
