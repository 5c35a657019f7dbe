"""
Transport Module - Black Box Interface

Purpose: Carry protocol frames between clients and the protocol server
Interface: Channel (receive(), send()), ChannelClosed, WebSocketChannel, StdioChannel
Hidden: Framing, close codes, blocking I/O

Can be replaced with other transports (raw TCP, SSE) implementing Channel.
"""

from .base import Channel, ChannelClosed
from .stdio import StdioChannel
from .websocket import WebSocketChannel

__all__ = ["Channel", "ChannelClosed", "StdioChannel", "WebSocketChannel"]
