"""
Tests for services/catalog_client.py

Covers:
- Record decoding (aliases, ignored fields)
- Retry on 5xx and transport errors, no retry on 4xx
- Error kinds for exhausted retries and bad payloads
- Playable URL resolution for assets and channels
- Playlist download with absolute segment URLs
- JSON null decoded as the zero value
"""

import json

import httpx
import pytest

from f1viewer.exceptions import CatalogFetchError, ErrorKind
from f1viewer.services.catalog_client import CatalogClient
from f1viewer.services.entity_resolver import format_driver
from f1viewer.services.episode_organizer import organize


BASE_URL = "https://f1tv.example.com"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class Recorder:
    """Mock transport handler replaying a list of responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        # Fresh copy so a replayed response is never shared between requests
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)


def make_client(handler, **kwargs) -> CatalogClient:
    kwargs.setdefault("max_retries", 3)
    return CatalogClient(
        BASE_URL,
        backoff_initial=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class TestRecords:
    @pytest.mark.asyncio
    async def test_episode(self):
        handler = Recorder(
            httpx.Response(
                200,
                json={
                    "uid": "ep_1",
                    "title": "Monaco Highlights",
                    "data_source_id": "19060000",
                    "items": ["/api/assets/1/"],
                    "unrelated": True,
                },
            )
        )
        client = make_client(handler)

        episode = await client.fetch_episode("/api/episodes/1/")
        await client.aclose()

        assert episode.title == "Monaco Highlights"
        assert episode.items == ["/api/assets/1/"]
        assert episode.driver_urls == []
        assert handler.requests[0].url.path == "/api/episodes/1/"
        assert "fields" in handler.requests[0].url.params

    @pytest.mark.asyncio
    async def test_seasons_read_from_objects(self):
        handler = Recorder(httpx.Response(200, json={"objects": [{"name": "2019 Season", "year": 2019}]}))
        client = make_client(handler)

        seasons = await client.fetch_seasons()
        await client.aclose()

        assert [season.name for season in seasons.seasons] == ["2019 Season"]

    @pytest.mark.asyncio
    async def test_session_streams_by_slug(self):
        handler = Recorder(
            httpx.Response(
                200,
                json={
                    "objects": [
                        {
                            "uid": "so_1",
                            "channel_urls": [
                                {"name": "WIF", "self": "/api/channels/wif/"},
                                {
                                    "name": "Lewis Hamilton",
                                    "self": "/api/channels/ham/",
                                    "driver_urls": [
                                        {"first_name": "Lewis", "last_name": "Hamilton", "driver_racingnumber": 44}
                                    ],
                                },
                            ],
                        }
                    ]
                },
            )
        )
        client = make_client(handler)

        streams = await client.fetch_session_streams("monaco-2019-race")
        await client.aclose()

        assert [channel.self_url for channel in streams.channels] == ["/api/channels/wif/", "/api/channels/ham/"]
        assert streams.channels[1].driver_urls[0].driver_racingnumber == 44
        assert handler.requests[0].url.params["slug"] == "monaco-2019-race"

    @pytest.mark.asyncio
    async def test_invalid_record_is_decode_error(self):
        handler = Recorder(httpx.Response(200, json={"driver_racingnumber": "forty-four"}))
        client = make_client(handler)

        with pytest.raises(CatalogFetchError) as exc_info:
            await client.fetch_driver("/api/driver/ham/")
        await client.aclose()

        assert exc_info.value.kind is ErrorKind.DECODE

    @pytest.mark.asyncio
    async def test_non_json_is_decode_error(self):
        handler = Recorder(httpx.Response(200, text="<html>maintenance</html>"))
        client = make_client(handler)

        with pytest.raises(CatalogFetchError) as exc_info:
            await client.fetch_team("/api/team/fer/")
        await client.aclose()

        assert exc_info.value.kind is ErrorKind.DECODE
        assert len(handler.requests) == 1


# ---------------------------------------------------------------------------
# Retries
# ---------------------------------------------------------------------------


class TestRetries:
    @pytest.mark.asyncio
    async def test_server_errors_retried(self):
        handler = Recorder(
            httpx.Response(503),
            httpx.Response(502),
            httpx.Response(200, json={"name": "Ferrari"}),
        )
        client = make_client(handler)

        team = await client.fetch_team("/api/team/fer/")
        await client.aclose()

        assert team.name == "Ferrari"
        assert len(handler.requests) == 3

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self):
        handler = Recorder(httpx.Response(404))
        client = make_client(handler)

        with pytest.raises(CatalogFetchError) as exc_info:
            await client.fetch_team("/api/team/none/")
        await client.aclose()

        assert exc_info.value.kind is ErrorKind.HTTP_STATUS
        assert exc_info.value.identifier == "/api/team/none/"
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        handler = Recorder(httpx.Response(500))
        client = make_client(handler, max_retries=2)

        with pytest.raises(CatalogFetchError) as exc_info:
            await client.fetch_team("/api/team/fer/")
        await client.aclose()

        assert exc_info.value.kind is ErrorKind.HTTP_STATUS
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_connection_error_retried(self):
        request = httpx.Request("GET", f"{BASE_URL}/api/team/fer/")
        handler = Recorder(
            httpx.ConnectError("connection refused", request=request),
            httpx.Response(200, json={"name": "Ferrari"}),
        )
        client = make_client(handler)

        team = await client.fetch_team("/api/team/fer/")
        await client.aclose()

        assert team.name == "Ferrari"
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_timeout_kind(self):
        request = httpx.Request("GET", f"{BASE_URL}/api/team/fer/")
        handler = Recorder(httpx.ReadTimeout("timed out", request=request))
        client = make_client(handler, max_retries=2)

        with pytest.raises(CatalogFetchError) as exc_info:
            await client.fetch_team("/api/team/fer/")
        await client.aclose()

        assert exc_info.value.kind is ErrorKind.TIMEOUT


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------


class TestPlayback:
    @pytest.mark.asyncio
    async def test_asset_url(self):
        handler = Recorder(httpx.Response(200, json={"objects": [{"tokenised_url": "https://cdn/x.m3u8"}]}))
        client = make_client(handler)

        url = await client.resolve_playable_url("/api/assets/1/")
        await client.aclose()

        assert url == "https://cdn/x.m3u8"
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/viewings/"
        assert json.loads(request.content) == {"asset_url": "/api/assets/1/"}

    @pytest.mark.asyncio
    async def test_channel_url(self):
        handler = Recorder(httpx.Response(200, json={"tokenised_url": "https://cdn/onboard.m3u8"}))
        client = make_client(handler)

        url = await client.resolve_playable_url("/api/channels/ham/")
        await client.aclose()

        assert url == "https://cdn/onboard.m3u8"
        assert json.loads(handler.requests[0].content) == {"channel_url": "/api/channels/ham/"}

    @pytest.mark.asyncio
    async def test_missing_url_is_decode_error(self):
        handler = Recorder(httpx.Response(200, json={"objects": []}))
        client = make_client(handler)

        with pytest.raises(CatalogFetchError) as exc_info:
            await client.resolve_playable_url("/api/assets/1/")
        await client.aclose()

        assert exc_info.value.kind is ErrorKind.DECODE

    @pytest.mark.asyncio
    async def test_download_asset(self, tmp_path):
        playlist = '#EXTM3U\n#EXT-X-KEY:METHOD=AES-128,URI="keys/1.key"\n#EXTINF:6.0,\nseg1.ts\n\nhttps://other.example.com/seg2.ts\n'
        handler = Recorder(httpx.Response(200, text=playlist))
        client = make_client(handler, download_dir=tmp_path)

        path = await client.download_asset("https://cdn.example.com/hls/index.m3u8", "Monaco / Race")
        await client.aclose()

        assert path.parent == tmp_path
        assert path.suffix == ".m3u8"
        content = path.read_text(encoding="utf-8").splitlines()
        assert content[1] == '#EXT-X-KEY:METHOD=AES-128,URI="https://cdn.example.com/hls/keys/1.key"'
        assert content[3] == "https://cdn.example.com/hls/seg1.ts"
        assert content[5] == "https://other.example.com/seg2.ts"


# ---------------------------------------------------------------------------
# Null fields
# ---------------------------------------------------------------------------


class TestNullFields:
    @pytest.mark.asyncio
    async def test_episode_with_null_source_id_lands_in_residual(self):
        handler = Recorder(
            httpx.Response(
                200,
                json={"title": "Docu", "data_source_id": None, "driver_urls": None, "items": ["/api/assets/d/"]},
            )
        )
        client = make_client(handler)

        episode = await client.fetch_episode("/api/episodes/docu/")
        await client.aclose()

        assert episode.data_source_id == ""
        assert episode.driver_urls == []
        organized = organize([episode])
        assert organized.buckets == []
        assert [e.title for e in organized.residual] == ["Docu"]

    @pytest.mark.asyncio
    async def test_driver_with_null_number_keeps_name(self):
        handler = Recorder(
            httpx.Response(200, json={"first_name": "Lewis", "last_name": "Hamilton", "driver_racingnumber": None})
        )
        client = make_client(handler)

        driver = await client.fetch_driver("/api/driver/ham/")
        await client.aclose()

        assert format_driver(driver) == " (0) Lewis Hamilton"

    @pytest.mark.asyncio
    async def test_null_nested_lists_and_aliases(self):
        handler = Recorder(
            httpx.Response(
                200,
                json={"objects": [{"uid": "so_1", "channel_urls": [{"name": "WIF", "self": None, "driver_urls": None}]}]},
            )
        )
        client = make_client(handler)

        streams = await client.fetch_session_streams("race")
        await client.aclose()

        assert streams.channels[0].self_url == ""
        assert streams.channels[0].driver_urls == []
