"""Tests for RenderingService (volume, mute, EQ)."""

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import LIVING_ROOM
from sonosctrl.api.rendering import RenderingService, clamp
from sonosctrl.api.soap import Service, SoapClient


@pytest.fixture
def soap() -> MagicMock:
    """Return a SoapClient double."""
    client = MagicMock(spec=SoapClient)
    client.send = AsyncMock(return_value="")
    return client


@pytest.fixture
def rendering(soap: MagicMock) -> RenderingService:
    """Return a RenderingService over the double."""
    return RenderingService(soap)


def sent_args(soap: MagicMock) -> list[tuple[str, object]]:
    """Return the argument list of the last send."""
    return soap.send.await_args.args[3]


class TestClamp:
    """Test the clamp helper."""

    @pytest.mark.parametrize(
        ("value", "expected"), [(-5, 0), (0, 0), (50, 50), (100, 100), (150, 100)]
    )
    def test_volume_range(self, value: int, expected: int) -> None:
        assert clamp(value, 0, 100) == expected


class TestVolume:
    """Test per-device volume calls."""

    @pytest.mark.asyncio
    async def test_get_volume(
        self, soap: MagicMock, rendering: RenderingService, soap_response: Callable[..., str]
    ) -> None:
        soap.send.return_value = soap_response(
            "GetVolume", "<CurrentVolume>42</CurrentVolume>", "RenderingControl"
        )
        assert await rendering.get_volume(LIVING_ROOM) == 42

        base_url, service, action, args = soap.send.await_args.args
        assert base_url == LIVING_ROOM.base_url
        assert service == Service.RENDERING_CONTROL
        assert action == "GetVolume"
        assert args == [("Channel", "Master")]

    @pytest.mark.asyncio
    async def test_missing_value_reads_zero(self, rendering: RenderingService) -> None:
        assert await rendering.get_volume(LIVING_ROOM) == 0
        assert await rendering.get_bass(LIVING_ROOM) == 0
        assert await rendering.get_mute(LIVING_ROOM) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("requested", "sent"), [(150, 100), (-5, 0), (37, 37)])
    async def test_set_volume_clamps(
        self, soap: MagicMock, rendering: RenderingService, requested: int, sent: int
    ) -> None:
        await rendering.set_volume(LIVING_ROOM, requested)
        assert sent_args(soap) == [("Channel", "Master"), ("DesiredVolume", sent)]

    @pytest.mark.asyncio
    async def test_set_relative_volume(
        self, soap: MagicMock, rendering: RenderingService, soap_response: Callable[..., str]
    ) -> None:
        soap.send.return_value = soap_response(
            "SetRelativeVolume", "<NewVolume>47</NewVolume>", "RenderingControl"
        )
        assert await rendering.set_relative_volume(LIVING_ROOM, -3) == 47
        assert sent_args(soap) == [("Channel", "Master"), ("Adjustment", -3)]


class TestMute:
    """Test mute calls."""

    @pytest.mark.asyncio
    async def test_get_mute(
        self, soap: MagicMock, rendering: RenderingService, soap_response: Callable[..., str]
    ) -> None:
        soap.send.return_value = soap_response(
            "GetMute", "<CurrentMute>1</CurrentMute>", "RenderingControl"
        )
        assert await rendering.get_mute(LIVING_ROOM) is True

    @pytest.mark.asyncio
    async def test_set_mute(self, soap: MagicMock, rendering: RenderingService) -> None:
        await rendering.set_mute(LIVING_ROOM, True)
        assert sent_args(soap) == [("Channel", "Master"), ("DesiredMute", "1")]
        await rendering.set_mute(LIVING_ROOM, False)
        assert sent_args(soap) == [("Channel", "Master"), ("DesiredMute", "0")]


class TestEqualizer:
    """Test bass and treble calls."""

    @pytest.mark.asyncio
    async def test_get_treble_negative(
        self, soap: MagicMock, rendering: RenderingService, soap_response: Callable[..., str]
    ) -> None:
        soap.send.return_value = soap_response(
            "GetTreble", "<CurrentTreble>-4</CurrentTreble>", "RenderingControl"
        )
        assert await rendering.get_treble(LIVING_ROOM) == -4

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("requested", "sent"), [(15, 10), (-20, -10), (3, 3)])
    async def test_set_bass_clamps(
        self, soap: MagicMock, rendering: RenderingService, requested: int, sent: int
    ) -> None:
        await rendering.set_bass(LIVING_ROOM, requested)
        assert sent_args(soap) == [("DesiredBass", sent)]

    @pytest.mark.asyncio
    async def test_set_treble_clamps(self, soap: MagicMock, rendering: RenderingService) -> None:
        await rendering.set_treble(LIVING_ROOM, -11)
        assert sent_args(soap) == [("DesiredTreble", -10)]


class TestGroupRendering:
    """Test GroupRenderingControl calls."""

    @pytest.mark.asyncio
    async def test_get_group_volume(
        self, soap: MagicMock, rendering: RenderingService, soap_response: Callable[..., str]
    ) -> None:
        soap.send.return_value = soap_response(
            "GetGroupVolume", "<CurrentVolume>25</CurrentVolume>", "GroupRenderingControl"
        )
        assert await rendering.get_group_volume(LIVING_ROOM) == 25
        assert soap.send.await_args.args[1] == Service.GROUP_RENDERING_CONTROL

    @pytest.mark.asyncio
    async def test_set_group_volume_clamps(
        self, soap: MagicMock, rendering: RenderingService
    ) -> None:
        await rendering.set_group_volume(LIVING_ROOM, 101)
        assert sent_args(soap) == [("DesiredVolume", 100)]

    @pytest.mark.asyncio
    async def test_group_mute(
        self, soap: MagicMock, rendering: RenderingService, soap_response: Callable[..., str]
    ) -> None:
        await rendering.set_group_mute(LIVING_ROOM, True)
        assert sent_args(soap) == [("DesiredMute", "1")]

        soap.send.return_value = soap_response(
            "GetGroupMute", "<CurrentMute>0</CurrentMute>", "GroupRenderingControl"
        )
        assert await rendering.get_group_mute(LIVING_ROOM) is False
