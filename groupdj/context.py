import logging
import threading

from groupdj.config import Settings
from groupdj.errors import DuplicateVote, NoSuchVote
from groupdj.models.song import Playlist

logger = logging.getLogger(__name__)


class PlaylistTable:
    """Playlists with at least one song still queued, keyed by playlist ID."""

    def __init__(self):
        self._lock = threading.Lock()
        self._playlists: dict[str, Playlist] = {}

    def register(self, playlist: Playlist) -> Playlist:
        """Add a playlist unless one with its ID is live. Returns the live entry."""
        with self._lock:
            return self._playlists.setdefault(playlist.id, playlist)

    def get(self, playlist_id: str | None) -> Playlist | None:
        if playlist_id is None:
            return None
        with self._lock:
            return self._playlists.get(playlist_id)

    def discard(self, playlist_id: str) -> Playlist | None:
        with self._lock:
            return self._playlists.pop(playlist_id, None)

    def clear(self) -> None:
        with self._lock:
            self._playlists.clear()

    def __contains__(self, playlist_id: str) -> bool:
        with self._lock:
            return playlist_id in self._playlists

    def __len__(self) -> int:
        with self._lock:
            return len(self._playlists)


class PlaylistVoteTable:
    """
    Shared skip votes for every song of a playlist, keyed by playlist ID.

    Songs of one playlist may be voted on from different threads, so every
    access goes through the table lock. An entry lives until release() is
    called for its playlist.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._votes: dict[str, set[str]] = {}

    def add(self, playlist_id: str, voter: str) -> int:
        """Record a vote. Returns the new vote count."""
        with self._lock:
            voters = self._votes.setdefault(playlist_id, set())
            if voter in voters:
                raise DuplicateVote(voter)
            voters.add(voter)
            return len(voters)

    def remove(self, playlist_id: str, voter: str) -> int:
        """Withdraw a vote. Returns the new vote count."""
        with self._lock:
            voters = self._votes.get(playlist_id)
            if not voters or voter not in voters:
                raise NoSuchVote(voter)
            voters.remove(voter)
            if not voters:
                del self._votes[playlist_id]
            return len(voters)

    def count(self, playlist_id: str) -> int:
        with self._lock:
            return len(self._votes.get(playlist_id, ()))

    def voters(self, playlist_id: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._votes.get(playlist_id, ()))

    def release(self, playlist_id: str) -> None:
        with self._lock:
            self._votes.pop(playlist_id, None)

    def clear(self) -> None:
        with self._lock:
            self._votes.clear()

    def __contains__(self, playlist_id: str) -> bool:
        with self._lock:
            return playlist_id in self._votes


class SessionContext:
    """
    Process-wide state for one voice session.

    Created at startup and closed at shutdown. Settings are fixed for the
    lifetime of the context; only the playlist tables change.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.playlists = PlaylistTable()
        self.playlist_votes = PlaylistVoteTable()
        self._closed = False
        self._expansion_lock = threading.Lock()
        self._expanding: dict[str, int] = {}  # playlist ID -> expansions in progress
        self._withdrawn: set[str] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    def pin_playlist(self, playlist_id: str) -> None:
        """Keep a playlist registered while it is being expanded."""
        with self._expansion_lock:
            self._expanding[playlist_id] = self._expanding.get(playlist_id, 0) + 1

    def unpin_playlist(self, playlist_id: str) -> None:
        with self._expansion_lock:
            remaining = self._expanding.get(playlist_id, 0) - 1
            if remaining > 0:
                self._expanding[playlist_id] = remaining
            else:
                self._expanding.pop(playlist_id, None)
                self._withdrawn.discard(playlist_id)

    def is_pinned(self, playlist_id: str) -> bool:
        with self._expansion_lock:
            return playlist_id in self._expanding

    def withdraw_playlist(self, playlist_id: str) -> None:
        """Stop any running expansion of a playlist from queuing more songs."""
        with self._expansion_lock:
            if playlist_id in self._expanding:
                self._withdrawn.add(playlist_id)

    def is_withdrawn(self, playlist_id: str | None) -> bool:
        with self._expansion_lock:
            return playlist_id in self._withdrawn

    def release_playlist(self, playlist_id: str) -> None:
        """Forget a playlist and its shared votes once no song references it."""
        self.playlist_votes.release(playlist_id)
        playlist = self.playlists.discard(playlist_id)
        if playlist:
            logger.info("Released playlist %s (%s)", playlist_id, playlist.title)

    def close(self) -> None:
        self.playlists.clear()
        self.playlist_votes.clear()
        with self._expansion_lock:
            self._expanding.clear()
            self._withdrawn.clear()
        self._closed = True

    def __enter__(self) -> "SessionContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
