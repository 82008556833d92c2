import logging
import re
from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

from groupdj.clients.youtube_api import YouTubeDataClient
from groupdj.context import SessionContext
from groupdj.errors import DurationExceeded, InvalidReference, MalformedDuration
from groupdj.models.song import Playlist, Song
from groupdj.music.queue import SongQueue

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def parse_reference(query: str) -> tuple[str, str]:
    """
    Detect what a submission points at.

    Returns ("video", id) or ("playlist", id). Accepts watch URLs, youtu.be
    links, playlist URLs and bare IDs (playlist IDs start with PL, UU, OL, RD
    or FL). Raises InvalidReference for anything else.
    """
    query = query.strip().strip("<>")
    parsed = urlparse(query)

    if parsed.netloc:
        params = parse_qs(parsed.query)
        host = parsed.netloc.lower()
        if host.endswith("youtu.be"):
            video_id = parsed.path.lstrip("/")
            if video_id:
                return "video", video_id
        elif "youtube.com" in host:
            if parsed.path == "/playlist" and params.get("list"):
                return "playlist", params["list"][0]
            if parsed.path == "/watch" and params.get("v"):
                return "video", params["v"][0]
            if parsed.path.startswith("/shorts/"):
                return "video", parsed.path.split("/")[2]
        raise InvalidReference(f"Not a YouTube video or playlist link: {query}")

    if _ID_RE.match(query):
        if query.startswith(("PL", "UU", "OL", "RD", "FL")) and len(query) > 11:
            return "playlist", query
        return "video", query
    raise InvalidReference(f"Not a YouTube video or playlist link: {query}")


@dataclass(frozen=True)
class Submission:
    """What one /play request queued. position is None for playlists."""

    item: Song | Playlist
    position: int | None = None


class Resolver:
    """Turns submissions into queued songs."""

    def __init__(
        self,
        youtube: YouTubeDataClient,
        queue: SongQueue,
        context: SessionContext,
    ):
        self.youtube = youtube
        self.queue = queue
        self.context = context

    def submit(self, submitter: str, query: str) -> Submission:
        """Resolve a URL or ID and queue it."""
        kind, ref = parse_reference(query)
        if kind == "playlist":
            return Submission(self.new_playlist(submitter, ref))

        song = self._build_song(submitter, ref)
        position = self.queue.add_song(song)
        return Submission(song, position)

    def new_song(self, submitter: str, video_id: str) -> Song:
        """
        Resolve a video and register it with the queue.

        Raises DurationExceeded when the video is over the maximum duration;
        nothing is queued in that case. Resolver errors propagate unchanged.
        """
        song = self._build_song(submitter, video_id)
        self.queue.add_song(song)
        return song

    def _build_song(
        self,
        submitter: str,
        video_id: str,
        playlist_id: str | None = None,
    ) -> Song:
        metadata = self.youtube.resolve_video(video_id)
        settings = self.context.settings

        if not settings.accepts_duration(metadata.total_seconds):
            raise DurationExceeded(
                metadata.title, metadata.total_seconds, settings.max_song_duration
            )

        return Song(
            id=video_id,
            submitter=submitter,
            title=metadata.title,
            thumbnail=metadata.thumbnail,
            total_seconds=metadata.total_seconds,
            duration=metadata.duration,
            playlist_id=playlist_id,
        )

    def new_playlist(self, submitter: str, playlist_id: str) -> Playlist:
        """
        Expand a playlist into queued songs, in listing order.

        Entries that are too long, deleted, private or report a broken
        duration are skipped and counted in Playlist.rejected. A failure to
        read the playlist itself aborts the expansion; songs queued before
        the failure stay queued.

        The playlist stays registered for the whole expansion, even if its
        first songs finish meanwhile. A vote that removes the playlist stops
        the expansion at the next entry. Once the expansion ends the playlist
        is released if no queued song points at it.
        """
        title = self.youtube.resolve_playlist_info(playlist_id)
        entries = self.youtube.resolve_playlist_items(playlist_id)

        playlist = Playlist(id=playlist_id, title=title, submitter=submitter)
        self.context.pin_playlist(playlist_id)
        try:
            # A re-submitted ID keeps the entry its earlier songs still use
            self.context.playlists.register(playlist)

            for entry in entries:
                if self.context.is_withdrawn(playlist_id):
                    logger.info("Playlist %s was voted off; stopping expansion", playlist_id)
                    break
                try:
                    song = self._build_song(submitter, entry.video_id, playlist_id)
                except DurationExceeded as e:
                    logger.info("Skipping %s from playlist %s: %s", entry.video_id, playlist_id, e)
                    playlist.rejected += 1
                    continue
                except (InvalidReference, MalformedDuration) as e:
                    logger.warning("Skipping %s from playlist %s: %s", entry.video_id, playlist_id, e)
                    playlist.rejected += 1
                    continue
                if self.queue.add_playlist_song(song) is None:
                    logger.info("Playlist %s was voted off; stopping expansion", playlist_id)
                    break
                playlist.songs.append(song)
        finally:
            self.context.unpin_playlist(playlist_id)
            self.queue.release_if_unreferenced(playlist_id)

        logger.info(
            "Playlist %s (%s): %d songs queued, %d rejected",
            playlist_id,
            title,
            len(playlist.songs),
            playlist.rejected,
        )
        return playlist
