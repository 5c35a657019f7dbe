"""Channel contract shared by all transports."""

from typing import Protocol


class ChannelClosed(Exception):
    """The peer closed the channel cleanly."""


class Channel(Protocol):
    """Bidirectional text message channel."""

    async def receive(self) -> str:
        """
        Wait for the next inbound frame.

        Raises:
            ChannelClosed: On a clean close by the peer
        """
        ...

    async def send(self, message: str) -> None:
        """Send one outbound frame."""
        ...
