"""
Pydantic schemas for transactional messaging.
"""

import re
from typing import List, Optional

from pydantic import BaseModel, Field

# ASCII and Arabic-Indic digits
_NOT_DIGITS = re.compile(r"[^0-9٠-٩]")
_RECIPIENT_SEPARATORS = re.compile(r"[;,|\s]+")


class EmailSettings(BaseModel):
    """Default sender for outgoing email."""
    
    sender_address: Optional[str] = None
    sender_name: Optional[str] = None


class SmsSettings(BaseModel):
    """Kept for constructor compatibility; SMS delivery is disabled."""
    
    sender_number: Optional[str] = None


class Email(BaseModel):
    """An HTML email to one or more recipients."""
    
    to_address: str = Field(..., description="Recipients separated by ';', ',', '|' or whitespace")
    subject: str = ""
    message: str = Field(default="", description="HTML body")
    from_address: Optional[str] = None
    from_name: Optional[str] = None
    
    @property
    def recipients(self) -> List[str]:
        return [r.strip() for r in _RECIPIENT_SEPARATORS.split(self.to_address or "") if r.strip()]


class Sms(BaseModel):
    """A text message; delivery is no longer supported."""
    
    country_code: Optional[str] = None
    local_number: Optional[str] = None
    message: Optional[str] = None
    
    @property
    def phone_number(self) -> str:
        """E.164-style number: digits of country code + local number, '+' prefixed."""
        digits = _NOT_DIGITS.sub("", (self.country_code or "") + (self.local_number or ""))
        return f"+{digits}"
