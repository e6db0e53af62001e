#!/usr/bin/env python3
"""
Message Normalizer
Maps raw webhook payloads of every supported channel to one CanonicalMessage.

Each channel has a single pure mapping function. Mappings never raise on
missing optional fields: absent text becomes "", absent identity becomes "",
absent or unreadable origin timestamps fall back to the current UTC time.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from integration_hub.channels.canonical_message import Attachment, CanonicalMessage
from integration_hub.channels.channel import Channel, parse_channel
from integration_hub.enums import AttachmentKind
from integration_hub.utils.log import get_logger

logger = get_logger(__name__)


def _get(data: Any, *path, default=None):
    """Safe nested lookup through dicts and lists."""
    current = data
    for key in path:
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and isinstance(key, int):
            current = current[key] if -len(current) <= key < len(current) else None
        else:
            return default
        if current is None:
            return default
    return current


def _as_str(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _from_epoch_seconds(value) -> datetime:
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return datetime.now(timezone.utc)


def _from_epoch_millis(value) -> datetime:
    try:
        return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return datetime.now(timezone.utc)


def _from_iso(value) -> datetime:
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def detect_file_type(mime_type: Optional[str]) -> AttachmentKind:
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return AttachmentKind.IMAGE
    if mime_type.startswith("video/"):
        return AttachmentKind.VIDEO
    if mime_type.startswith("audio/"):
        return AttachmentKind.AUDIO
    return AttachmentKind.DOCUMENT


def _message(channel: Channel, integration, **fields) -> CanonicalMessage:
    return CanonicalMessage(
        channel=channel,
        owner_type=integration.owner_type,
        owner_id=integration.owner_id,
        **fields
    )


# Telegram
def normalize_telegram(update: Dict[str, Any], integration) -> CanonicalMessage:
    message = _get(update, "message") or _get(update, "edited_message") or {}
    sender = _get(message, "from", default={})

    username = _as_str(_get(sender, "username"))
    if not username:
        full_name = f"{_get(sender, 'first_name', default='')} {_get(sender, 'last_name', default='')}"
        username = _as_str(full_name)

    return _message(
        Channel.TELEGRAM, integration,
        external_user_id=_as_str(_get(sender, "id")) or "",
        username=username,
        phone=_as_str(_get(message, "contact", "phone_number")),
        message_text=_get(message, "text") or _get(message, "caption") or "",
        attachments=_telegram_attachments(message),
        received_at=_from_epoch_seconds(_get(message, "date")),
        raw_payload=update,
    )


def _telegram_attachments(message: Dict[str, Any]) -> List[Attachment]:
    attachments = []

    photos = _get(message, "photo")
    if isinstance(photos, list) and photos:
        # sizes are ordered, the last one is the highest resolution
        file_id = _get(photos, -1, "file_id")
        if file_id:
            attachments.append(Attachment(kind=AttachmentKind.IMAGE, url=str(file_id)))
    if _get(message, "video", "file_id"):
        attachments.append(Attachment(kind=AttachmentKind.VIDEO, url=str(message["video"]["file_id"])))
    if _get(message, "document", "file_id"):
        attachments.append(Attachment(
            kind=AttachmentKind.DOCUMENT,
            url=str(message["document"]["file_id"]),
            filename=_get(message, "document", "file_name"),
        ))
    if _get(message, "voice", "file_id"):
        attachments.append(Attachment(kind=AttachmentKind.AUDIO, url=str(message["voice"]["file_id"])))

    return attachments


# Instagram Direct
def normalize_instagram(webhook: Dict[str, Any], integration) -> CanonicalMessage:
    messaging = _get(webhook, "entry", 0, "messaging", 0, default={})
    message = _get(messaging, "message", default={})

    return _message(
        Channel.INSTAGRAM, integration,
        external_user_id=_as_str(_get(messaging, "sender", "id")) or "",
        username=_as_str(_get(messaging, "sender", "username")),
        message_text=_get(message, "text") or "",
        attachments=_instagram_attachments(message),
        received_at=_from_epoch_millis(_get(messaging, "timestamp")),
        raw_payload=webhook,
    )


def _instagram_attachments(message: Dict[str, Any]) -> List[Attachment]:
    attachments = []
    for att in _get(message, "attachments", default=[]) or []:
        url = _get(att, "payload", "url")
        if not url:
            continue
        if _get(att, "type") == "image":
            attachments.append(Attachment(kind=AttachmentKind.IMAGE, url=url))
        elif _get(att, "type") == "video":
            attachments.append(Attachment(kind=AttachmentKind.VIDEO, url=url))
    return attachments


# VK
def normalize_vk(update: Dict[str, Any], integration) -> CanonicalMessage:
    message = _get(update, "object", "message", default={})

    return _message(
        Channel.VK, integration,
        external_user_id=_as_str(_get(message, "from_id")) or "",
        message_text=_get(message, "text") or "",
        attachments=_vk_attachments(message),
        received_at=_from_epoch_seconds(_get(message, "date")),
        raw_payload=update,
    )


def _vk_attachments(message: Dict[str, Any]) -> List[Attachment]:
    attachments = []
    for att in _get(message, "attachments", default=[]) or []:
        att_type = _get(att, "type")
        if att_type == "photo":
            url = _get(att, "photo", "sizes", -1, "url")
            if url:
                attachments.append(Attachment(kind=AttachmentKind.IMAGE, url=url))
        elif att_type == "video":
            url = _get(att, "video", "player")
            if url:
                attachments.append(Attachment(kind=AttachmentKind.VIDEO, url=url))
        elif att_type == "doc":
            url = _get(att, "doc", "url")
            if url:
                attachments.append(Attachment(
                    kind=AttachmentKind.DOCUMENT, url=url, filename=_get(att, "doc", "title")
                ))
    return attachments


# WhatsApp Business
_WHATSAPP_MEDIA = (
    ("image", AttachmentKind.IMAGE),
    ("video", AttachmentKind.VIDEO),
    ("document", AttachmentKind.DOCUMENT),
    ("audio", AttachmentKind.AUDIO),
)


def normalize_whatsapp(webhook: Dict[str, Any], integration) -> CanonicalMessage:
    value = _get(webhook, "entry", 0, "changes", 0, "value", default={})
    message = _get(value, "messages", 0, default={})
    contact = _get(value, "contacts", 0, default={})
    sender = _as_str(_get(message, "from"))

    return _message(
        Channel.WHATSAPP, integration,
        external_user_id=sender or "",
        username=_as_str(_get(contact, "profile", "name")),
        phone=sender,
        message_text=_get(message, "text", "body") or _whatsapp_caption(message) or "",
        attachments=_whatsapp_attachments(message),
        received_at=_from_epoch_seconds(_get(message, "timestamp")),
        raw_payload=webhook,
    )


def _whatsapp_caption(message: Dict[str, Any]) -> Optional[str]:
    if _get(message, "caption"):
        return message["caption"]
    for field, _ in _WHATSAPP_MEDIA:
        caption = _get(message, field, "caption")
        if caption:
            return caption
    return None


def _whatsapp_attachments(message: Dict[str, Any]) -> List[Attachment]:
    # media ids have to be resolved through the Graph API, they are not URLs
    for field, kind in _WHATSAPP_MEDIA:
        media_id = _get(message, field, "id")
        if media_id:
            return [Attachment(kind=kind, url=str(media_id), filename=_get(message, field, "filename"))]
    return []


# Avito
def normalize_avito(message: Dict[str, Any], integration) -> CanonicalMessage:
    return _message(
        Channel.AVITO, integration,
        external_user_id=_as_str(_get(message, "user_id")) or "",
        username=_as_str(_get(message, "user_name")),
        phone=_as_str(_get(message, "phone")),
        message_text=_get(message, "text") or "",
        received_at=_from_iso(_get(message, "created_at")),
        raw_payload=message,
    )


# MAX
def normalize_max(message: Dict[str, Any], integration) -> CanonicalMessage:
    timestamp = _get(message, "timestamp")
    if isinstance(timestamp, (int, float)) or (isinstance(timestamp, str) and timestamp.isdigit()):
        received_at = _from_epoch_millis(timestamp)
    else:
        received_at = _from_iso(timestamp)

    attachments = []
    for file in _get(message, "files", default=[]) or []:
        url = _get(file, "url")
        if url:
            attachments.append(Attachment(
                kind=detect_file_type(_get(file, "mime_type")), url=url, filename=_get(file, "name")
            ))

    return _message(
        Channel.MAX, integration,
        external_user_id=_as_str(_get(message, "sender_id")) or "",
        username=_as_str(_get(message, "sender_name")),
        phone=_as_str(_get(message, "phone")),
        message_text=_get(message, "content") or "",
        attachments=attachments,
        received_at=received_at,
        raw_payload=message,
    )


NORMALIZERS: Dict[Channel, Callable[[Dict[str, Any], Any], CanonicalMessage]] = {
    Channel.TELEGRAM: normalize_telegram,
    Channel.INSTAGRAM: normalize_instagram,
    Channel.VK: normalize_vk,
    Channel.WHATSAPP: normalize_whatsapp,
    Channel.AVITO: normalize_avito,
    Channel.MAX: normalize_max,
}

_missing = set(Channel) - set(NORMALIZERS)
if _missing:
    raise RuntimeError(f"No normalizer registered for channels: {sorted(c.value for c in _missing)}")


def normalize_message(channel, payload: Any, integration) -> CanonicalMessage:
    """Validate the channel tag, then map the payload with that channel's normalizer."""
    channel = parse_channel(channel)
    if not isinstance(payload, dict):
        logger.warning(f"⚠️ {channel.value} payload is {type(payload).__name__}, not an object; normalizing as empty")
        payload = {}
    return NORMALIZERS[channel](payload, integration)
