"""
pytest configuration and fixtures for groupdj tests.
"""

from typing import Callable

import httpx
import pytest

from groupdj.clients.youtube_api import YouTubeDataClient
from groupdj.config import Settings
from groupdj.context import SessionContext
from groupdj.models.song import Song
from groupdj.music.queue import SongQueue
from groupdj.music.voting import SkipVoteManager
from groupdj.resolver import Resolver


class FakeYouTubeAPI:
    """
    In-memory stand-in for the YouTube Data API, served through
    httpx.MockTransport. Records every request it answers.
    """

    def __init__(self):
        self.videos: dict[str, dict] = {}
        self.playlists: dict[str, dict] = {}
        self.status_overrides: dict[str, int] = {}  # ID -> HTTP status
        self.on_lookup: dict[str, Callable[[], None]] = {}  # ID -> run before answering
        self.requests: list[httpx.Request] = []

    def add_video(self, video_id: str, title: str, duration: str) -> None:
        self.videos[video_id] = {
            "snippet": {
                "title": title,
                "thumbnails": {"high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"}},
            },
            "contentDetails": {"duration": duration},
        }

    def add_playlist(self, playlist_id: str, title: str, video_ids: list[str], total: int | None = None) -> None:
        self.playlists[playlist_id] = {
            "title": title,
            "video_ids": video_ids,
            "total": len(video_ids) if total is None else total,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        params = request.url.params
        endpoint = request.url.path.rsplit("/", 1)[-1]
        ref = params.get("id") or params.get("playlistId")

        if ref in self.on_lookup:
            self.on_lookup[ref]()

        if ref in self.status_overrides:
            return httpx.Response(self.status_overrides[ref], json={"error": {}})

        if endpoint == "videos":
            items = [self.videos[ref]] if ref in self.videos else []
            return httpx.Response(200, json={"items": items})

        if endpoint == "playlists":
            if ref not in self.playlists:
                return httpx.Response(200, json={"items": []})
            return httpx.Response(
                200, json={"items": [{"snippet": {"title": self.playlists[ref]["title"]}}]}
            )

        if endpoint == "playlistItems":
            if ref not in self.playlists:
                return httpx.Response(404, json={"error": {}})
            playlist = self.playlists[ref]
            max_results = int(params.get("maxResults", 5))
            items = [
                {
                    "snippet": {
                        "title": f"Entry {video_id}",
                        "resourceId": {"kind": "youtube#video", "videoId": video_id},
                        "thumbnails": {"high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"}},
                    }
                }
                for video_id in playlist["video_ids"][:max_results]
            ]
            return httpx.Response(
                200,
                json={"items": items, "pageInfo": {"totalResults": playlist["total"], "resultsPerPage": max_results}},
            )

        return httpx.Response(404)

    def count(self, endpoint: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(f"/{endpoint}"))


@pytest.fixture
def settings():
    """Default settings: 5 minute limit, half the room to skip."""
    return Settings(
        youtube_api_key="test-key",
        max_song_duration=300,
        skip_ratio=0.5,
        playlist_skip_ratio=0.5,
    )


@pytest.fixture
def context(settings):
    ctx = SessionContext(settings)
    yield ctx
    ctx.close()


@pytest.fixture
def queue(context):
    return SongQueue(context)


@pytest.fixture
def votes(context):
    return SkipVoteManager(context)


@pytest.fixture
def fake_api():
    return FakeYouTubeAPI()


@pytest.fixture
def youtube(fake_api):
    client = YouTubeDataClient(
        "test-key", client=httpx.Client(transport=httpx.MockTransport(fake_api.handler))
    )
    yield client
    client.close()


@pytest.fixture
def resolver(youtube, queue, context):
    return Resolver(youtube, queue, context)


@pytest.fixture
def make_song():
    """Build songs without touching the API."""

    def _make(video_id: str = "dQw4w9WgXcQ", playlist_id: str | None = None, **overrides) -> Song:
        fields = {
            "id": video_id,
            "submitter": "alice",
            "title": f"Video {video_id}",
            "thumbnail": "",
            "total_seconds": 185,
            "duration": "3:05",
            "playlist_id": playlist_id,
        }
        fields.update(overrides)
        return Song(**fields)

    return _make
