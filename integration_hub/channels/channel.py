from enum import Enum

from integration_hub.errors import UnsupportedChannelError


class Channel(str, Enum):
    TELEGRAM = "telegram"  # chat platform
    INSTAGRAM = "instagram"  # photo-sharing platform direct messages
    VK = "vk"  # social network
    WHATSAPP = "whatsapp"  # business-messaging platform
    AVITO = "avito"  # classifieds platform
    MAX = "max"  # generic messenger


SUPPORTED_CHANNELS = tuple(c.value for c in Channel)


def parse_channel(value) -> Channel:
    """Validate a channel tag against the closed set of channels."""
    if isinstance(value, Channel):
        return value
    try:
        return Channel(str(value).strip().lower())
    except ValueError:
        raise UnsupportedChannelError(value) from None
