"""
Channel Normalization Package

Channel tags, the canonical message model and the per-channel payload mappings.
"""

from .channel import Channel, SUPPORTED_CHANNELS, parse_channel
from .canonical_message import Attachment, CanonicalMessage
from .message_normalizer import normalize_message

__all__ = ['Channel', 'SUPPORTED_CHANNELS', 'parse_channel', 'Attachment', 'CanonicalMessage', 'normalize_message']
