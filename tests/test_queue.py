"""
Tests for the song queue.
"""

from groupdj.models.song import Playlist


class TestSongQueue:
    """Test SongQueue operations."""

    def test_create_queue(self, queue):
        assert queue.is_empty()
        assert len(queue) == 0
        assert queue.current is None

    def test_add_song(self, queue, make_song):
        """Test that positions count from 0."""
        assert queue.add_song(make_song("a1")) == 0
        assert queue.add_song(make_song("b2")) == 1
        assert len(queue) == 2

    def test_next(self, queue, make_song):
        first = make_song("a1")
        second = make_song("b2")
        queue.add_song(first)
        queue.add_song(second)

        assert queue.next() is first
        assert queue.current is first
        assert queue.get_list() == [second]

    def test_next_empty(self, queue):
        assert queue.next() is None
        assert queue.current is None

    def test_on_song_finished(self, queue, make_song):
        song = make_song()
        queue.add_song(song)
        queue.next()

        assert queue.on_song_finished() is song
        assert queue.current is None
        assert queue.on_song_finished() is None

    def test_remove_waiting(self, queue, make_song):
        first = make_song("a1")
        second = make_song("b2")
        queue.add_song(first)
        queue.add_song(second)

        assert queue.remove(second) is True
        assert queue.get_list() == [first]
        assert queue.remove(second) is False

    def test_same_video_queued_twice(self, queue, make_song):
        """Test that removal is by song, not by video ID."""
        first = make_song("a1")
        again = make_song("a1")
        queue.add_song(first)
        queue.add_song(again)

        queue.remove(again)

        assert queue.get_list() == [first]
        assert queue.get_list()[0] is first

    def test_clear_keeps_current(self, queue, make_song):
        playing = make_song("a1")
        queue.add_song(playing)
        queue.add_song(make_song("b2"))
        queue.next()

        queue.clear()

        assert queue.is_empty()
        assert queue.current is playing


class TestPlaylistRelease:
    """Tests for releasing playlist votes as songs leave the queue."""

    def _queue_playlist(self, queue, context, make_song, count=2):
        playlist = Playlist(id="PLtest", title="Road Trip", submitter="alice")
        context.playlists.register(playlist)
        for i in range(count):
            song = make_song(f"v{i}", playlist_id="PLtest")
            queue.add_song(song)
            playlist.songs.append(song)
        return playlist

    def test_release_after_last_song(self, queue, context, votes, make_song):
        """Test that only the last song leaving releases the vote set."""
        playlist = self._queue_playlist(queue, context, make_song)
        votes.add_skip(playlist.songs[0], "bob")

        queue.remove(playlist.songs[0])
        assert votes.playlist_votes("PLtest") == 1
        assert "PLtest" in context.playlists

        queue.remove(playlist.songs[1])
        assert "PLtest" not in context.playlist_votes
        assert "PLtest" not in context.playlists

    def test_current_song_holds_reference(self, queue, context, votes, make_song):
        """Test that the playing song keeps its playlist alive."""
        playlist = self._queue_playlist(queue, context, make_song, count=1)
        votes.add_skip(playlist.songs[0], "bob")

        queue.next()
        assert queue.references("PLtest")
        assert votes.playlist_votes("PLtest") == 1

        queue.on_song_finished()
        assert not queue.references("PLtest")
        assert "PLtest" not in context.playlist_votes

    def test_remove_playlist(self, queue, context, votes, make_song):
        """Test dropping a whole playlist while one of its songs plays."""
        playlist = self._queue_playlist(queue, context, make_song, count=3)
        standalone = make_song("solo")
        queue.add_song(standalone)
        votes.add_skip(playlist.songs[0], "bob")
        queue.next()

        removed = queue.remove_playlist("PLtest")

        assert removed == playlist.songs[1:]
        assert queue.get_list() == [standalone]
        assert "PLtest" in context.playlist_votes

        queue.on_song_finished()
        assert "PLtest" not in context.playlist_votes

    def test_clear_releases(self, queue, context, votes, make_song):
        playlist = self._queue_playlist(queue, context, make_song)
        votes.add_skip(playlist.songs[0], "bob")

        queue.clear()

        assert "PLtest" not in context.playlist_votes
        assert len(context.playlists) == 0

    def test_pinned_playlist_not_released(self, queue, context, votes, make_song):
        """Test that a playlist under expansion outlives its last queued song."""
        playlist = self._queue_playlist(queue, context, make_song, count=1)
        votes.add_skip(playlist.songs[0], "bob")
        context.pin_playlist("PLtest")

        queue.remove(playlist.songs[0])
        assert "PLtest" in context.playlists
        assert votes.playlist_votes("PLtest") == 1

        context.unpin_playlist("PLtest")
        assert queue.release_if_unreferenced("PLtest")
        assert "PLtest" not in context.playlists
        assert "PLtest" not in context.playlist_votes

    def test_withdrawn_playlist_refuses_songs(self, queue, context, make_song):
        self._queue_playlist(queue, context, make_song, count=1)
        context.pin_playlist("PLtest")

        queue.remove_playlist("PLtest")

        assert context.is_withdrawn("PLtest")
        assert queue.add_playlist_song(make_song("late", playlist_id="PLtest")) is None
        assert queue.is_empty()

        context.unpin_playlist("PLtest")
        assert not context.is_withdrawn("PLtest")
        assert queue.add_playlist_song(make_song("later", playlist_id="PLtest")) == 0

    def test_withdraw_without_expansion_is_noop(self, queue, context, make_song):
        self._queue_playlist(queue, context, make_song, count=1)

        queue.remove_playlist("PLtest")

        assert not context.is_withdrawn("PLtest")
