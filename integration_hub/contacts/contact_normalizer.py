#!/usr/bin/env python3
"""
Contact Normalizer
Derives the contact a lead is opened for from a canonical message: display
name, phone, email and the platform identity of the originating channel.
"""

import re
from typing import Optional

from pydantic import BaseModel

from integration_hub.channels.canonical_message import CanonicalMessage
from integration_hub.channels.channel import Channel
from integration_hub.enums import OwnerType
from integration_hub.utils.strings import short_id

# Domestic trunk prefix and the country code it stands for
TRUNK_PREFIX = "8"
COUNTRY_CODE = "7"

_PHONE_PATTERNS = [
    re.compile(r"\+7\s?\(?\d{3}\)?\s?\d{3}[-\s]?\d{2}[-\s]?\d{2}"),  # +7 (XXX) XXX-XX-XX
    re.compile(r"(?<!\d)8\s?\(?\d{3}\)?\s?\d{3}[-\s]?\d{2}[-\s]?\d{2}"),  # 8 (XXX) XXX-XX-XX
    re.compile(r"\+7\d{10}"),
    re.compile(r"(?<!\d)8\d{10}(?!\d)"),
]
_EMAIL_IN_TEXT = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_EMAIL_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class NormalizedContact(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None

    telegram_id: Optional[str] = None
    instagram_username: Optional[str] = None
    vk_id: Optional[str] = None
    whatsapp_id: Optional[str] = None

    source: str
    source_channel: Channel
    external_user_id: str
    first_message: str = ""

    owner_type: OwnerType
    owner_id: Optional[str] = None

    def platform_identity(self) -> Optional[str]:
        return self.telegram_id or self.instagram_username or self.vk_id or self.whatsapp_id


class ContactNormalizer:
    """Stateless helpers; every method is a class/static method."""

    @classmethod
    def derive_identity(cls, message: CanonicalMessage) -> NormalizedContact:
        channel = message.channel
        external_id = message.external_user_id
        return NormalizedContact(
            name=cls.extract_name(message),
            phone=cls.normalize_phone(message.phone),
            email=None,
            telegram_id=external_id if channel == Channel.TELEGRAM and external_id else None,
            instagram_username=external_id if channel == Channel.INSTAGRAM and external_id else None,
            vk_id=external_id if channel == Channel.VK and external_id else None,
            whatsapp_id=external_id if channel == Channel.WHATSAPP and external_id else None,
            source=f"{channel.value}_integration",
            source_channel=channel,
            external_user_id=external_id,
            first_message=message.message_text,
            owner_type=message.owner_type,
            owner_id=message.owner_id,
        )

    @staticmethod
    def extract_name(message: CanonicalMessage) -> str:
        """username > first/last name from the payload > synthesized name (never empty)."""
        if message.username and message.username.strip():
            return message.username.strip()

        payload = message.raw_payload if isinstance(message.raw_payload, dict) else {}
        sender = payload.get("from")
        if not isinstance(sender, dict):
            inner = payload.get("message") or payload.get("edited_message") or {}
            sender = inner.get("from") if isinstance(inner, dict) else None
        if isinstance(sender, dict) and sender.get("first_name"):
            return f"{sender['first_name']} {sender.get('last_name') or ''}".strip()

        return f"{message.channel.value}_user_{short_id(message.external_user_id)}"

    @staticmethod
    def normalize_phone(phone: Optional[str]) -> Optional[str]:
        """
        Normalize to international form.

        "8 (999) 123-45-67" -> "+79991234567", "9991234567" -> "+79991234567".
        Returns None when fewer than 10 digits remain. Idempotent.
        """
        if not phone:
            return None

        raw = str(phone).strip()
        digits = re.sub(r"\D", "", raw)
        normalized = f"+{digits}" if raw.startswith("+") else digits

        if normalized.startswith(TRUNK_PREFIX) and len(normalized) == 11:
            normalized = f"+{COUNTRY_CODE}{normalized[1:]}"

        if not normalized.startswith("+"):
            if len(normalized) == 10:
                normalized = f"+{COUNTRY_CODE}{normalized}"
            elif len(normalized) == 11 and normalized.startswith(COUNTRY_CODE):
                normalized = f"+{normalized}"

        if len(digits) < 10:
            return None

        return normalized

    @staticmethod
    def normalize_email(email: Optional[str]) -> Optional[str]:
        if not email:
            return None
        normalized = email.strip().lower()
        if not _EMAIL_SHAPE.match(normalized):
            return None
        return normalized

    @classmethod
    def extract_phone_from_text(cls, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        for pattern in _PHONE_PATTERNS:
            match = pattern.search(text)
            if match:
                return cls.normalize_phone(match.group(0))
        return None

    @classmethod
    def extract_email_from_text(cls, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        match = _EMAIL_IN_TEXT.search(text)
        return cls.normalize_email(match.group(0)) if match else None

    @classmethod
    def enrich_from_text(cls, contact: NormalizedContact, text: Optional[str]) -> NormalizedContact:
        """Fill phone/email from free text, only where structured fields left gaps."""
        updates = {}
        if not contact.phone:
            updates["phone"] = cls.extract_phone_from_text(text)
        if not contact.email:
            updates["email"] = cls.extract_email_from_text(text)
        return contact.model_copy(update=updates)

    @staticmethod
    def is_valid(contact: NormalizedContact) -> bool:
        """A usable contact has a name and at least one reachable channel."""
        if not contact.name or not contact.name.strip():
            return False
        return bool(contact.phone or contact.email or contact.platform_identity())
