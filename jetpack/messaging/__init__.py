"""
Transactional messaging (email via SendGrid, deprecated SMS).
"""

from jetpack.messaging.schemas import Email, EmailSettings, Sms, SmsSettings
from jetpack.messaging.service import MessageService, get_message_service

__all__ = [
    "Email",
    "EmailSettings",
    "Sms",
    "SmsSettings",
    "MessageService",
    "get_message_service",
]
