import logging
import threading
from collections import deque

from groupdj.context import SessionContext
from groupdj.models.song import Song

logger = logging.getLogger(__name__)


class SongQueue:
    """
    Songs waiting to be played in the voice session, plus the one playing.

    Every path that takes a song out of the queue checks whether its playlist
    is still referenced; the last song of a playlist to leave releases the
    playlist's shared votes. Playlists pinned by a running expansion are
    released when the expansion ends instead.
    """

    def __init__(self, context: SessionContext):
        self._context = context
        self._lock = threading.RLock()
        self._queue: deque[Song] = deque()
        self.current: Song | None = None

    def add_song(self, song: Song) -> int:
        """Register a song. Returns position in queue (0 = playing next)."""
        with self._lock:
            self._queue.append(song)
            position = len(self._queue) - 1
        logger.info("Queued %s (%s) for %s at %d", song.id, song.title, song.submitter, position)
        return position

    def add_playlist_song(self, song: Song) -> int | None:
        """
        Register a song from a playlist expansion. Returns its position, or
        None if the playlist was voted off while it was being expanded.
        """
        with self._lock:
            if self._context.is_withdrawn(song.playlist_id):
                return None
            return self.add_song(song)

    def next(self) -> Song | None:
        """Make the next song current. Returns None if the queue is empty."""
        with self._lock:
            self.current = self._queue.popleft() if self._queue else None
            return self.current

    def on_song_finished(self) -> Song | None:
        """Drop the current song after it played out or was skipped. Returns it."""
        with self._lock:
            finished = self.current
            self.current = None
            if finished:
                self._release_if_unreferenced(finished.playlist_id)
            return finished

    def remove(self, song: Song) -> bool:
        """Take one song out of the queue, whether waiting or current."""
        with self._lock:
            if song is self.current:
                self.current = None
            else:
                try:
                    self._queue.remove(song)
                except ValueError:
                    return False
            self._release_if_unreferenced(song.playlist_id)
        logger.info("Removed %s (%s) from the queue", song.id, song.title)
        return True

    def remove_playlist(self, playlist_id: str) -> list[Song]:
        """Drop every waiting song of a playlist. The current song is left to the player."""
        with self._lock:
            removed = [s for s in self._queue if s.playlist_id == playlist_id]
            self._queue = deque(s for s in self._queue if s.playlist_id != playlist_id)
            self._context.withdraw_playlist(playlist_id)
            self._release_if_unreferenced(playlist_id)
        logger.info("Removed %d songs of playlist %s", len(removed), playlist_id)
        return removed

    def references(self, playlist_id: str) -> bool:
        """Check whether any waiting or current song belongs to the playlist."""
        with self._lock:
            if self.current and self.current.playlist_id == playlist_id:
                return True
            return any(s.playlist_id == playlist_id for s in self._queue)

    def clear(self) -> None:
        """Clear all waiting songs (keeps the current song playing)."""
        with self._lock:
            playlist_ids = {s.playlist_id for s in self._queue if s.playlist_id}
            self._queue.clear()
            for playlist_id in playlist_ids:
                self._release_if_unreferenced(playlist_id)

    def get_list(self) -> list[Song]:
        """Get a copy of the waiting songs as a list."""
        with self._lock:
            return list(self._queue)

    def is_empty(self) -> bool:
        with self._lock:
            return len(self._queue) == 0

    def release_if_unreferenced(self, playlist_id: str) -> bool:
        """Release a playlist no queued song points at. Returns True if released."""
        with self._lock:
            return self._release_if_unreferenced(playlist_id)

    def _release_if_unreferenced(self, playlist_id: str | None) -> bool:
        # A playlist being expanded stays registered until its expansion ends
        if playlist_id is None or self._context.is_pinned(playlist_id):
            return False
        if self.references(playlist_id):
            return False
        self._context.release_playlist(playlist_id)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)
