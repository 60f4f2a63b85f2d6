"""Tests for the channel registry."""

import pytest

from gemclaw.messaging.channel_registry import ChannelRegistry
from gemclaw.messaging.types import Channel
from gemclaw.scheduling.errors import DeliveryError


class FakeChannel:
    def __init__(self, name: str, suffix: str, connected: bool = True):
        self.name = name
        self._suffix = suffix
        self._connected = connected
        self.sent: list[tuple[str, str]] = []
        self.disconnected = False

    async def connect(self) -> None:
        self._connected = True

    async def send_message(self, jid: str, text: str) -> None:
        self.sent.append((jid, text))

    def is_connected(self) -> bool:
        return self._connected

    def owns_jid(self, jid: str) -> bool:
        return jid.endswith(self._suffix)

    async def disconnect(self) -> None:
        self.disconnected = True
        self._connected = False


class TestChannelRegistry:
    def test_fake_satisfies_protocol(self):
        assert isinstance(FakeChannel("wa", "@g.us"), Channel)

    def test_duplicate_name_rejected(self):
        registry = ChannelRegistry()
        registry.register(FakeChannel("wa", "@g.us"))
        with pytest.raises(ValueError, match="already registered"):
            registry.register(FakeChannel("wa", "@s.whatsapp.net"))

    def test_routes_by_jid(self):
        registry = ChannelRegistry()
        wa = FakeChannel("wa", "@g.us")
        tg = FakeChannel("tg", "@telegram")
        registry.register(wa)
        registry.register(tg)
        assert registry.find_by_jid("1@telegram") is tg
        assert registry.find_by_jid("nobody@else") is None

    def test_connected_lookup_skips_offline(self):
        registry = ChannelRegistry()
        registry.register(FakeChannel("wa", "@g.us", connected=False))
        assert registry.find_connected_by_jid("1@g.us") is None

    @pytest.mark.asyncio
    async def test_send(self):
        registry = ChannelRegistry()
        wa = FakeChannel("wa", "@g.us")
        registry.register(wa)
        await registry.send("1@g.us", "hi")
        assert wa.sent == [("1@g.us", "hi")]

    @pytest.mark.asyncio
    async def test_send_without_channel_raises(self):
        registry = ChannelRegistry()
        registry.register(FakeChannel("wa", "@g.us", connected=False))
        with pytest.raises(DeliveryError, match="No connected channel"):
            await registry.send("1@g.us", "hi")

    @pytest.mark.asyncio
    async def test_connect_and_disconnect_all(self):
        registry = ChannelRegistry()
        wa = FakeChannel("wa", "@g.us", connected=False)
        registry.register(wa)
        await registry.connect_all()
        assert wa.is_connected()
        await registry.disconnect_all()
        assert wa.disconnected
