import logging

from groupdj.context import SessionContext
from groupdj.errors import DuplicateVote, NoSuchVote
from groupdj.models.song import Song

logger = logging.getLogger(__name__)


def ratio_reached(votes: int, listeners: int, ratio: float) -> bool:
    """votes / listeners >= ratio. An empty channel never reaches the threshold."""
    if listeners <= 0:
        return False
    return votes / listeners >= ratio


class SkipVoteManager:
    """
    Skip votes for songs and playlists.

    A standalone song keeps its own voter set and uses the item skip ratio.
    A song that came from a playlist votes into the playlist's shared set,
    held by the session context, and uses the playlist skip ratio. The
    threshold is evaluated on demand against the listener count at that
    moment, never cached.

    Example:
        votes = SkipVoteManager(context)
        votes.add_skip(song, "alice")
        if votes.skip_reached(song, listeners=3):
            queue.remove(song)
    """

    def __init__(self, context: SessionContext):
        self._context = context

    @property
    def _settings(self):
        return self._context.settings

    # === Song-or-playlist votes ===

    def add_skip(self, song: Song, voter: str) -> int:
        """Vote to skip a song, or its whole playlist. Returns the vote count."""
        if song.playlist_id is not None:
            return self.add_playlist_skip(song.playlist_id, voter)
        return self.add_song_skip(song, voter)

    def remove_skip(self, song: Song, voter: str) -> int:
        """Withdraw a vote made with add_skip(). Returns the vote count."""
        if song.playlist_id is not None:
            return self.remove_playlist_skip(song.playlist_id, voter)
        return self.remove_song_skip(song, voter)

    def votes(self, song: Song) -> int:
        if song.playlist_id is not None:
            return self._context.playlist_votes.count(song.playlist_id)
        return len(song.skippers)

    def skip_reached(self, song: Song, listeners: int) -> bool:
        if song.playlist_id is not None:
            return self.playlist_skip_reached(song.playlist_id, listeners)
        return self.song_skip_reached(song, listeners)

    # === Per-song votes ===

    def add_song_skip(self, song: Song, voter: str) -> int:
        if voter in song.skippers:
            raise DuplicateVote(voter)
        song.skippers.add(voter)
        logger.info("%s voted to skip %s (%d votes)", voter, song.id, len(song.skippers))
        return len(song.skippers)

    def remove_song_skip(self, song: Song, voter: str) -> int:
        if voter not in song.skippers:
            raise NoSuchVote(voter)
        song.skippers.remove(voter)
        logger.info("%s withdrew skip for %s", voter, song.id)
        return len(song.skippers)

    def song_skip_reached(self, song: Song, listeners: int) -> bool:
        return ratio_reached(len(song.skippers), listeners, self._settings.skip_ratio)

    # === Per-playlist votes ===

    def add_playlist_skip(self, playlist_id: str, voter: str) -> int:
        count = self._context.playlist_votes.add(playlist_id, voter)
        logger.info("%s voted to skip playlist %s (%d votes)", voter, playlist_id, count)
        return count

    def remove_playlist_skip(self, playlist_id: str, voter: str) -> int:
        count = self._context.playlist_votes.remove(playlist_id, voter)
        logger.info("%s withdrew skip for playlist %s", voter, playlist_id)
        return count

    def playlist_votes(self, playlist_id: str) -> int:
        return self._context.playlist_votes.count(playlist_id)

    def playlist_skip_reached(self, playlist_id: str, listeners: int) -> bool:
        return ratio_reached(
            self._context.playlist_votes.count(playlist_id),
            listeners,
            self._settings.playlist_skip_ratio,
        )

    def release(self, playlist_id: str) -> None:
        """Discard a playlist's shared votes. Call once no queued song references it."""
        self._context.playlist_votes.release(playlist_id)
