"""
Protocol boundary: message classes, the codec interface and the channel
that pairs a codec with a transport.
"""
from .channel import Channel
from .codec import MessageCodec

__all__ = ["Channel", "MessageCodec"]
