"""Registry pattern for multiple channels."""

from __future__ import annotations

from gemclaw.infrastructure.logger import logger
from gemclaw.messaging.types import Channel
from gemclaw.scheduling.errors import DeliveryError


class ChannelRegistry:
    """Manages registered channels and routes JIDs to the correct channel."""

    def __init__(self) -> None:
        self._channels: list[Channel] = []

    def register(self, channel: Channel) -> None:
        if any(c.name == channel.name for c in self._channels):
            raise ValueError(f'Channel "{channel.name}" is already registered')
        self._channels.append(channel)

    def find_by_jid(self, jid: str) -> Channel | None:
        return next((c for c in self._channels if c.owns_jid(jid)), None)

    def find_connected_by_jid(self, jid: str) -> Channel | None:
        return next((c for c in self._channels if c.owns_jid(jid) and c.is_connected()), None)

    def get_all(self) -> list[Channel]:
        return list(self._channels)

    async def send(self, jid: str, text: str) -> None:
        """Deliver text through the connected channel that owns the jid."""
        channel = self.find_connected_by_jid(jid)
        if channel is None:
            raise DeliveryError(f"No connected channel for {jid}", {"jid": jid})
        await channel.send_message(jid, text)

    async def connect_all(self) -> None:
        for channel in self._channels:
            try:
                await channel.connect()
            except Exception:
                logger.exception("Error connecting channel", channel=channel.name)

    async def disconnect_all(self) -> None:
        for channel in self._channels:
            try:
                await channel.disconnect()
            except Exception:
                logger.exception("Error disconnecting channel", channel=channel.name)
