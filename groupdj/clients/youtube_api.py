import logging
from dataclasses import dataclass
from typing import Any

import httpx

from groupdj.errors import (
    InvalidCredentials,
    InvalidReference,
    MalformedDuration,
    ProviderUnavailable,
)
from groupdj.models.duration import parse_duration

logger = logging.getLogger(__name__)


@dataclass
class VideoMetadata:
    title: str
    thumbnail: str
    total_seconds: int
    duration: str


@dataclass
class PlaylistEntry:
    title: str
    video_id: str
    thumbnail: str


def _dig(data: Any, *path: str | int, default: Any = "") -> Any:
    """Walk nested dicts/lists, returning default at the first missing step."""
    for key in path:
        try:
            data = data[key]
        except (KeyError, IndexError, TypeError):
            return default
    return data if data is not None else default


class YouTubeDataClient:
    """Metadata lookups against the YouTube Data API v3."""

    BASE_URL = "https://www.googleapis.com/youtube/v3"
    MAX_PLAYLIST_ITEMS = 25

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def _get(self, endpoint: str, **params: Any) -> dict:
        """One GET against the API. Maps failures onto the resolver errors."""
        params["key"] = self._api_key
        try:
            response = self._client.get(f"{self.BASE_URL}/{endpoint}", params=params)
        except httpx.HTTPError as e:
            logger.error("YouTube API request to %s failed: %s", endpoint, e)
            raise ProviderUnavailable(f"Could not reach the YouTube API: {e}") from e

        if response.status_code == 200:
            return response.json()
        if response.status_code == 403:
            logger.error("YouTube API rejected the API key (%s)", endpoint)
            raise InvalidCredentials("Invalid YouTube API key supplied.")

        logger.warning(
            "YouTube API %s returned %s for %s",
            endpoint,
            response.status_code,
            params.get("id") or params.get("playlistId"),
        )
        raise InvalidReference("Invalid YouTube ID supplied.")

    def resolve_video(self, video_id: str) -> VideoMetadata:
        """
        Get title, thumbnail and duration for a video.

        Raises InvalidReference for unknown IDs and MalformedDuration if the
        reported duration cannot be parsed.
        """
        data = self._get("videos", part="snippet,contentDetails", id=video_id)
        items = data.get("items") or []
        if not items:
            raise InvalidReference(f"No video found for ID {video_id}.")

        item = items[0]
        raw_duration = _dig(item, "contentDetails", "duration")
        try:
            total_seconds, display = parse_duration(raw_duration)
        except MalformedDuration:
            logger.warning("Video %s has malformed duration %r", video_id, raw_duration)
            raise

        return VideoMetadata(
            title=_dig(item, "snippet", "title"),
            thumbnail=_dig(item, "snippet", "thumbnails", "high", "url"),
            total_seconds=total_seconds,
            duration=display,
        )

    def resolve_playlist_info(self, playlist_id: str) -> str:
        """Get the title of a playlist."""
        data = self._get("playlists", part="snippet", id=playlist_id)
        items = data.get("items") or []
        if not items:
            raise InvalidReference(f"No playlist found for ID {playlist_id}.")
        return _dig(items[0], "snippet", "title")

    def resolve_playlist_items(self, playlist_id: str) -> list[PlaylistEntry]:
        """
        List the first entries of a playlist, at most MAX_PLAYLIST_ITEMS.

        The listing carries no durations; callers resolve each entry with
        resolve_video().
        """
        data = self._get(
            "playlistItems",
            part="snippet",
            maxResults=self.MAX_PLAYLIST_ITEMS,
            playlistId=playlist_id,
        )
        items = data.get("items") or []
        total = _dig(data, "pageInfo", "totalResults", default=len(items))
        count = min(int(total), self.MAX_PLAYLIST_ITEMS, len(items))

        entries = []
        for item in items[:count]:
            video_id = _dig(item, "snippet", "resourceId", "videoId")
            if not video_id:
                continue
            entries.append(
                PlaylistEntry(
                    title=_dig(item, "snippet", "title"),
                    video_id=video_id,
                    thumbnail=_dig(item, "snippet", "thumbnails", "high", "url"),
                )
            )
        return entries

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "YouTubeDataClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
