from __future__ import annotations

import asyncio

import pytest

import login
from adapters.telegram_channel import TelegramChannel
from core.channel import ChannelLifecycle, ChannelState


class DummyClient:
    """Telethon-like client whose authorization and disconnects are scripted."""

    def __init__(self, authorized=(True,)) -> None:
        self._authorized = list(authorized)
        self.connects = 0
        self.disconnects = 0
        self._disconnected: "asyncio.Future | None" = None

    async def connect(self) -> None:
        self.connects += 1
        self._disconnected = asyncio.get_running_loop().create_future()

    async def is_user_authorized(self) -> bool:
        return self._authorized.pop(0) if self._authorized else True

    @property
    def disconnected(self) -> "asyncio.Future":
        return self._disconnected

    def drop(self) -> None:
        self._disconnected.set_result(None)

    async def disconnect(self) -> None:
        self.disconnects += 1


async def _until(predicate) -> None:
    while not predicate():
        await asyncio.sleep(0.01)


def _recorded(lifecycle: ChannelLifecycle) -> list[ChannelState]:
    seen: list[ChannelState] = []
    lifecycle.subscribe(lambda _old, new: seen.append(new))
    return seen


@pytest.fixture
def qr_login(monkeypatch):
    scans: list[object] = []

    async def _fake_qr(client) -> None:
        scans.append(client)

    monkeypatch.setattr(login, "_pick_login_method", lambda: "qr")
    monkeypatch.setattr(login, "_authorize_with_qr", _fake_qr)
    return scans


def test_connect_with_stored_session_goes_ready() -> None:
    lifecycle = ChannelLifecycle()
    seen = _recorded(lifecycle)
    pushed: list[bool] = []
    channel = TelegramChannel(DummyClient(), lifecycle, on_authenticated=lambda: pushed.append(True))

    asyncio.run(channel.connect())

    assert seen == [ChannelState.READY]
    assert pushed == []


def test_login_challenge_awaits_authentication_then_stores_session(qr_login) -> None:
    lifecycle = ChannelLifecycle()
    seen = _recorded(lifecycle)
    pushed: list[bool] = []
    client = DummyClient(authorized=(False,))
    channel = TelegramChannel(client, lifecycle, on_authenticated=lambda: pushed.append(True))

    asyncio.run(channel.connect())

    assert seen == [ChannelState.AWAITING_AUTHENTICATION, ChannelState.READY]
    assert qr_login == [client]
    assert pushed == [True]


def test_failed_session_upload_keeps_channel_ready(qr_login) -> None:
    def _upload() -> None:
        raise RuntimeError("bucket missing")

    lifecycle = ChannelLifecycle()
    channel = TelegramChannel(DummyClient(authorized=(False,)), lifecycle, on_authenticated=_upload)

    asyncio.run(channel.connect())

    assert lifecycle.is_ready


def test_run_reconnects_after_disconnect() -> None:
    client = DummyClient()
    lifecycle = ChannelLifecycle()
    seen = _recorded(lifecycle)
    channel = TelegramChannel(client, lifecycle, reconnect_delay=0)

    async def _scenario() -> None:
        task = asyncio.create_task(channel.run())
        await asyncio.wait_for(_until(lambda: lifecycle.is_ready), timeout=2)

        client.drop()
        await asyncio.wait_for(_until(lambda: client.connects == 2 and lifecycle.is_ready), timeout=2)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_scenario())

    assert seen == [ChannelState.READY, ChannelState.DISCONNECTED, ChannelState.READY]


def test_connect_failure_is_retried() -> None:
    class FlakyClient(DummyClient):
        async def connect(self) -> None:
            await super().connect()
            if self.connects == 1:
                raise ConnectionError("network down")

    client = FlakyClient()
    lifecycle = ChannelLifecycle()
    seen = _recorded(lifecycle)
    channel = TelegramChannel(client, lifecycle, reconnect_delay=0)

    async def _scenario() -> None:
        task = asyncio.create_task(channel.run())
        await asyncio.wait_for(_until(lambda: lifecycle.is_ready), timeout=2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_scenario())

    assert client.connects == 2
    assert seen == [ChannelState.READY]


def test_close_disconnects_client() -> None:
    client = DummyClient()
    channel = TelegramChannel(client, ChannelLifecycle())

    asyncio.run(channel.close())

    assert client.disconnects == 1
