from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from integration_hub.channels.channel import Channel
from integration_hub.enums import AttachmentKind, OwnerType


class Attachment(BaseModel):
    kind: AttachmentKind
    # direct URL, or an opaque platform media/file id where the channel does not expose URLs
    url: str
    filename: Optional[str] = None


class CanonicalMessage(BaseModel):
    """One inbound message in the channel-independent shape.

    (channel, external_user_id) identifies one real conversation partner.
    """
    channel: Channel
    external_user_id: str = ""
    username: Optional[str] = None
    phone: Optional[str] = None
    message_text: str = ""
    attachments: List[Attachment] = Field(default_factory=list)
    owner_type: OwnerType
    owner_id: Optional[str] = None
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    raw_payload: Any = None
