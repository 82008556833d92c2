import logging
import threading
from pathlib import Path
from typing import Callable, Protocol

import discord

from groupdj.clients.downloader import SongCache
from groupdj.context import PlaylistTable
from groupdj.errors import DeleteFailed, DownloadFailed, PlaybackFailed
from groupdj.models.song import Announcement, Song
from groupdj.music.queue import SongQueue

logger = logging.getLogger(__name__)


class AudioEngine(Protocol):
    """Plays one local file and reports completion through a callback."""

    def play(self, path: Path, on_finished: Callable[[Exception | None], None]) -> None: ...

    def stop(self) -> None: ...

    def is_playing(self) -> bool: ...


class VoiceAudio:
    """AudioEngine backed by a Discord voice connection."""

    def __init__(self, voice_client: discord.VoiceClient):
        self.voice_client = voice_client

    def play(self, path: Path, on_finished: Callable[[Exception | None], None]) -> None:
        if not Path(path).exists():
            raise PlaybackFailed(f"Audio file is missing: {path}")
        try:
            source = discord.FFmpegPCMAudio(str(path))
            self.voice_client.play(source, after=on_finished)
        except (discord.ClientException, OSError) as e:
            raise PlaybackFailed(f"Could not start playback of {Path(path).name}: {e}") from e

    def stop(self) -> None:
        if self.voice_client.is_playing() or self.voice_client.is_paused():
            self.voice_client.stop()  # This triggers the after callback

    def is_playing(self) -> bool:
        return self.voice_client.is_playing() or self.voice_client.is_paused()


class Player:
    """Downloads, plays and announces songs from the queue, one at a time."""

    def __init__(
        self,
        queue: SongQueue,
        cache: SongCache,
        audio: AudioEngine,
        playlists: PlaylistTable,
        on_song_start: Callable[[Announcement], None] | None = None,
        on_song_end: Callable[[Song], None] | None = None,
    ):
        self.queue = queue
        self.cache = cache
        self.audio = audio
        self.playlists = playlists
        self.on_song_start = on_song_start
        self.on_song_end = on_song_end
        self._lock = threading.Lock()
        self._loading: Song | None = None  # Current song while it downloads
        self._skip_loading = False

    def play_next(self) -> Song | None:
        """
        Start the next song. Returns it, or None if the queue is empty.

        A song skipped while it was still downloading is dropped without
        playing and the one after it is started instead.

        Raises DownloadFailed or PlaybackFailed after dropping the song from
        the queue; the caller decides whether to try the next one.
        """
        while True:
            with self._lock:
                song = self.queue.next()
                self._loading = song
                self._skip_loading = False
            if not song:
                return None

            try:
                path = self.cache.download(song)
                with self._lock:
                    skipped = self._skip_loading
                    self._loading = None
                    if not skipped:
                        self.audio.play(path, self._after)
            except (DownloadFailed, PlaybackFailed) as e:
                with self._lock:
                    self._loading = None
                logger.error("Could not play %s (%s): %s", song.id, song.title, e)
                self.queue.on_song_finished()
                raise

            if not skipped:
                break
            logger.info("Skipped %s (%s) before it started", song.id, song.title)
            self.queue.on_song_finished()
            self._delete(song)

        playlist = self.playlists.get(song.playlist_id)
        announcement = song.announcement(playlist.title if playlist else None)
        if self.on_song_start:
            self.on_song_start(announcement)
        return song

    def skip(self) -> None:
        """Stop the current song. The completion callback moves the queue on."""
        with self._lock:
            if self._loading is not None:
                self._skip_loading = True
                return
        self.audio.stop()

    def is_playing(self) -> bool:
        return self.audio.is_playing()

    def _delete(self, song: Song) -> None:
        try:
            self.cache.delete(song)
        except DeleteFailed as e:
            logger.warning("%s", e)

    def _after(self, error: Exception | None) -> None:
        if error:
            logger.error("Player error: %s", error)

        finished = self.queue.on_song_finished()
        if finished is None:
            return

        self._delete(finished)
        if self.on_song_end:
            self.on_song_end(finished)
