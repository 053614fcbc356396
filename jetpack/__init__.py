"""
Jetpack Services Client

Library facade over blob storage (with image derivative generation) and
transactional email.
"""

# Set before the subpackage imports; jetpack.core.logging reads it at import time
__version__ = "1.0.0"

from jetpack.messaging import Email, EmailSettings, MessageService, Sms
from jetpack.pipeline import ImageSettings, SourceAsset, StorageService, StoredAsset

__all__ = [
    "Email",
    "EmailSettings",
    "MessageService",
    "Sms",
    "ImageSettings",
    "SourceAsset",
    "StorageService",
    "StoredAsset",
]
