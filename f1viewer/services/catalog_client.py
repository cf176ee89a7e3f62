"""
Catalog Client

Fetches catalog entities from the remote VOD API.
Transient failures are retried with exponential backoff; everything else
surfaces as CatalogFetchError so callers can degrade per item.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TypeVar

import httpx
from pydantic import ValidationError

from f1viewer.exceptions import CatalogFetchError, ErrorKind
from f1viewer.schemas import (
    CatalogRecord,
    Driver,
    Episode,
    Event,
    SeasonList,
    Session,
    SessionStreams,
    Team,
    VodTypeList,
)
from f1viewer.utils.file_operations import absolutize_playlist, write_playlist


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=CatalogRecord)

VOD_TYPES_PATH = "/api/vod-type-tag/"
SEASONS_PATH = "/api/race-season/"
SESSION_OCCURRENCE_PATH = "/api/session-occurrence/"
VIEWINGS_PATH = "/api/viewings/"
CHANNEL_PREFIX = "/api/channels/"

EPISODE_FIELDS = "uid,title,subtitle,synopsis,data_source_id,driver_urls,team_urls,items"
DRIVER_FIELDS = "first_name,last_name,driver_racingnumber"
SEASON_FIELDS = "uid,name,year,eventoccurrence_urls"
EVENT_FIELDS = "uid,name,official_name,start_date,end_date,sessionoccurrence_urls"
SESSION_FIELDS = "uid,name,session_name,status,slug"
STREAM_FIELDS = (
    "uid,name,channel_urls,channel_urls__uid,channel_urls__name,channel_urls__self,"
    "channel_urls__driver_urls,channel_urls__driver_urls__first_name,"
    "channel_urls__driver_urls__last_name,channel_urls__driver_urls__driver_racingnumber"
)


class CatalogClient:
    """
    Async client for the VOD catalog API.

    One instance is shared by every component; it owns a single
    httpx.AsyncClient so connections are pooled across concurrent fetches.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        backoff_initial: float = 1.0,
        download_dir: Path | str = ".",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )
        self._max_retries = max(1, max_retries)
        self._backoff_factor = backoff_factor
        self._backoff_initial = backoff_initial
        self._download_dir = Path(download_dir)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_vod_categories(self) -> VodTypeList:
        return await self._get_record(
            VOD_TYPES_PATH, VodTypeList, params={"fields": "name,content_urls"}
        )

    async def fetch_episode(self, episode_id: str) -> Episode:
        return await self._get_record(episode_id, Episode, params={"fields": EPISODE_FIELDS})

    async def fetch_driver(self, driver_id: str) -> Driver:
        return await self._get_record(driver_id, Driver, params={"fields": DRIVER_FIELDS})

    async def fetch_team(self, team_id: str) -> Team:
        return await self._get_record(team_id, Team, params={"fields": "name"})

    async def fetch_seasons(self) -> SeasonList:
        return await self._get_record(
            SEASONS_PATH,
            SeasonList,
            params={"fields": SEASON_FIELDS, "year__gt": "2017", "order": "year"},
        )

    async def fetch_event(self, event_id: str) -> Event:
        return await self._get_record(event_id, Event, params={"fields": EVENT_FIELDS})

    async def fetch_session(self, session_id: str) -> Session:
        return await self._get_record(session_id, Session, params={"fields": SESSION_FIELDS})

    async def fetch_session_streams(self, slug: str) -> SessionStreams:
        return await self._get_record(
            SESSION_OCCURRENCE_PATH,
            SessionStreams,
            params={"fields": STREAM_FIELDS, "slug": slug},
        )

    async def resolve_playable_url(self, asset_id: str) -> str:
        """
        Exchange an asset or channel identifier for a tokenised stream URL

        Args:
            asset_id: Episode item or perspective identifier

        Returns:
            Playable URL

        Raises:
            CatalogFetchError: If the API does not return a URL
        """
        if asset_id.startswith(CHANNEL_PREFIX):
            body = {"channel_url": asset_id}
        else:
            body = {"asset_url": asset_id}

        payload = await self._request_json("POST", VIEWINGS_PATH, json=body)

        url = payload.get("tokenised_url") if isinstance(payload, dict) else None
        if not url and isinstance(payload, dict):
            objects = payload.get("objects") or []
            if objects and isinstance(objects[0], dict):
                url = objects[0].get("tokenised_url")
        if not url:
            raise CatalogFetchError(asset_id, ErrorKind.DECODE, f"No playable URL returned for {asset_id}")

        logger.debug("Resolved %s to %s", asset_id, url)
        return url

    async def download_asset(self, url: str, title: str) -> Path:
        """
        Download an HLS playlist and store it with absolute segment URLs

        Args:
            url: Playable playlist URL
            title: Title used for the local file name

        Returns:
            Path to the saved playlist
        """
        response = await self._send("GET", url, identifier=url)
        content = absolutize_playlist(response.text, str(response.url))
        return await write_playlist(content, title, self._download_dir)

    async def _get_record(
        self,
        path: str,
        model: type[RecordT],
        *,
        params: dict[str, str] | None = None,
    ) -> RecordT:
        payload = await self._request_json("GET", path, params=params)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.error("Unexpected payload for %s: %s", path, exc)
            raise CatalogFetchError(path, ErrorKind.DECODE, str(exc)) from exc

    async def _request_json(self, method: str, path: str, **kwargs) -> dict:
        response = await self._send(method, path, identifier=path, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise CatalogFetchError(path, ErrorKind.DECODE, f"Invalid JSON from {path}") from exc

    async def _send(self, method: str, url: str, *, identifier: str, **kwargs) -> httpx.Response:
        """
        Send a request with exponential backoff retry logic

        Retries on transient network errors (timeouts, connection errors)
        and 5xx responses. Does NOT retry on 4xx HTTP errors (client errors).

        Raises:
            CatalogFetchError: If the request fails after all retries
        """
        last_error: CatalogFetchError | None = None

        for attempt in range(self._max_retries):
            try:
                response = await self._client.request(method, url, **kwargs)
                response.raise_for_status()
                return response

            except (httpx.TimeoutException, httpx.TransportError) as e:
                # Transient network errors - retry
                kind = ErrorKind.TIMEOUT if isinstance(e, httpx.TimeoutException) else ErrorKind.CONNECTION
                last_error = CatalogFetchError(identifier, kind, f"{type(e).__name__} for {identifier}")
                last_error.__cause__ = e

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if 400 <= status < 500:
                    logger.error("HTTP %s (client error) for %s", status, identifier)
                    raise CatalogFetchError(
                        identifier, ErrorKind.HTTP_STATUS, f"HTTP {status} for {identifier}"
                    ) from e

                # 5xx server error - retry
                last_error = CatalogFetchError(
                    identifier, ErrorKind.HTTP_STATUS, f"HTTP {status} for {identifier}"
                )
                last_error.__cause__ = e

            if attempt < self._max_retries - 1:
                wait_time = self._backoff_initial * self._backoff_factor ** attempt
                logger.warning(
                    "Request attempt %s/%s for %s failed (%s). Retrying in %.1fs...",
                    attempt + 1,
                    self._max_retries,
                    identifier,
                    last_error.kind.value,
                    wait_time,
                )
                await asyncio.sleep(wait_time)

        logger.error("Request for %s failed after %s attempts", identifier, self._max_retries)
        raise last_error
