"""Unit tests for the aggregated-stats client."""

import pytest
import aiohttp
from unittest.mock import AsyncMock, MagicMock, patch
from tenacity import wait_none

from metascope.errors import NetworkError, StatsAPIError
from metascope.models.patch import LaneRole
from metascope.stats.client import AggregatedChampionStats, StatsClient, parse_role


def make_response(status=200, json_data=None, text=""):
    resp = MagicMock()
    resp.status = status
    resp.__aenter__.return_value = resp
    resp.__aexit__.return_value = None
    resp.json = AsyncMock(return_value=json_data)
    resp.text = AsyncMock(return_value=text)
    return resp


def client_with(*responses):
    client = StatsClient("https://stats.example.com/", "key")
    session = MagicMock()
    session.closed = False
    if len(responses) == 1:
        session.request.return_value = responses[0]
    else:
        session.request.side_effect = list(responses)
    client._session = session
    return client, session


@pytest.fixture(autouse=True)
def no_retry_wait():
    with patch.object(StatsClient._call.retry, "wait", wait_none()):
        yield


ROWS = [
    {"champion_id": "Ahri", "patch_version": "25.02", "region": "euw1", "tier": "DIAMOND_PLUS",
     "role": None, "total_matches": 1200, "win_rate": 52.5, "pick_rate": 8.1, "ban_rate": 3.0},
    {"champion_id": "Zed", "patch_version": "25.02", "region": "euw1", "tier": "DIAMOND_PLUS",
     "role": "MIDDLE", "total_matches": None, "win_rate": None},
]


@pytest.mark.asyncio
class TestStatsClient:
    """Requests and error mapping."""

    async def test_session_headers(self):
        async with StatsClient("https://stats.example.com", "secret") as client:
            session = await client._get_session()
            assert session.headers["apikey"] == "secret"
            assert session.headers["Authorization"] == "Bearer secret"
        assert client._session.closed

    async def test_patch_stats_query(self):
        client, session = client_with(make_response(json_data=ROWS))

        rows = await client.get_patch_stats("25.02", "euw1")

        assert [r.champion_id for r in rows] == ["Ahri", "Zed"]
        method, url = session.request.call_args.args
        params = session.request.call_args.kwargs["params"]
        assert (method, url) == ("GET", "https://stats.example.com/rest/v1/champion_stats_aggregated")
        assert params["patch_version"] == "eq.25.02"
        assert params["tier"] == "eq.DIAMOND_PLUS"
        assert params["role"] == "is.null"

    async def test_patch_stats_by_role(self):
        client, session = client_with(make_response(json_data=[]))
        await client.get_patch_stats("25.02", "euw1", tier="MASTER", by_role=True)

        params = session.request.call_args.kwargs["params"]
        assert params["role"] == "not.is.null"
        assert params["tier"] == "eq.MASTER"

    async def test_champion_stats_query(self):
        client, session = client_with(make_response(json_data=ROWS[1:]))

        rows = await client.get_champion_stats("Zed", "25.02", "euw1", role="MIDDLE")

        assert rows[0].role == "MIDDLE"
        params = session.request.call_args.kwargs["params"]
        assert params["champion_id"] == "eq.Zed"
        assert params["role"] == "eq.MIDDLE"
        assert "tier" not in params

    async def test_non_2xx_raises_with_status_and_body(self):
        client, session = client_with(make_response(status=401, text='{"message":"bad key"}'))

        with pytest.raises(StatsAPIError) as exc_info:
            await client.get_patch_stats("25.02", "euw1")

        assert exc_info.value.status == 401
        assert "bad key" in exc_info.value.body
        assert isinstance(exc_info.value, NetworkError)
        assert session.request.call_count == 1

    async def test_transport_error_wrapped(self):
        client = StatsClient("https://stats.example.com", "key")
        session = MagicMock()
        session.closed = False
        session.request.side_effect = aiohttp.ClientConnectionError("refused")
        client._session = session

        with pytest.raises(NetworkError):
            await client.get_available_patches()
        assert session.request.call_count == 3

    async def test_server_error_retried(self):
        """5xx is retried, the next good answer is returned."""
        client, session = client_with(
            make_response(status=503, text="busy"),
            make_response(json_data=["25.02"]),
        )

        assert await client.get_available_patches() == ["25.02"]
        assert session.request.call_count == 2

    async def test_available_patches_rpc(self):
        client, session = client_with(make_response(json_data=["25.02", "25.01"]))

        assert await client.get_available_patches() == ["25.02", "25.01"]
        method, url = session.request.call_args.args
        assert (method, url) == ("POST", "https://stats.example.com/rest/v1/rpc/get_stats_patches")

    async def test_meta_changes(self):
        client = StatsClient("https://stats.example.com", "key")
        old = [AggregatedChampionStats("Ahri", "25.01", "euw1", "D", win_rate=50.0, pick_rate=8.0, ban_rate=2.0)]
        new = [
            AggregatedChampionStats("Ahri", "25.02", "euw1", "D", win_rate=52.0, pick_rate=7.0, ban_rate=2.5),
            AggregatedChampionStats("Mel", "25.02", "euw1", "D", win_rate=48.0),
        ]
        with patch.object(client, "get_patch_stats", new_callable=AsyncMock) as get_patch_stats:
            get_patch_stats.side_effect = [old, new]
            changes = await client.get_meta_changes("25.01", "25.02", "euw1")

        ahri, mel = changes
        assert ahri.win_rate_diff == pytest.approx(2.0)
        assert ahri.pick_rate_diff == pytest.approx(-1.0)
        assert ahri.ban_rate_diff == pytest.approx(0.5)
        assert (mel.win_rate_diff, mel.pick_rate_diff, mel.ban_rate_diff) == (0.0, 0.0, 0.0)

    async def test_check_status(self):
        client, _ = client_with(make_response(json_data=[]))
        assert await client.check_status()

        client, _ = client_with(make_response(status=500, text="down"))
        assert not await client.check_status()


class TestRows:
    """Row decoding into domain objects."""

    def test_from_row_and_conversion(self):
        ahri = AggregatedChampionStats.from_row(ROWS[0]).to_champion_stats()
        assert (ahri.id, ahri.tier, ahri.role, ahri.win_rate) == ("Ahri", "DIAMOND_PLUS", LaneRole.UNKNOWN, 52.5)

        zed = AggregatedChampionStats.from_row(ROWS[1])
        assert zed.total_matches == 0
        stats = zed.to_champion_stats()
        assert (stats.role, stats.win_rate, stats.pick_rate) == (LaneRole.MID, 50.0, 0.0)

    @pytest.mark.parametrize("raw,expected", [
        ("TOP", LaneRole.TOP),
        ("JUNGLE", LaneRole.JUNGLE),
        ("MIDDLE", LaneRole.MID),
        ("BOTTOM", LaneRole.ADC),
        ("UTILITY", LaneRole.SUPPORT),
        ("adc", LaneRole.ADC),
        (None, LaneRole.UNKNOWN),
        ("roam", LaneRole.UNKNOWN),
    ])
    def test_parse_role(self, raw, expected):
        assert parse_role(raw) == expected

    def test_from_settings_unconfigured(self):
        with patch("metascope.stats.client.settings") as settings:
            settings.STATS_API_URL = None
            settings.STATS_API_KEY = None
            assert StatsClient.from_settings() is None
