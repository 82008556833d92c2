from dataclasses import dataclass, field

_SONG_IDENTITY = frozenset(
    {"id", "submitter", "title", "thumbnail", "total_seconds", "duration", "playlist_id"}
)


@dataclass(eq=False)
class Song:
    """
    A resolved video waiting in (or playing from) the queue.

    Identity fields are fixed once set; only dont_skip and the skippers set
    change after construction.
    """

    id: str  # YouTube video ID
    submitter: str
    title: str
    thumbnail: str
    total_seconds: int
    duration: str  # Display form, e.g. "3:05"
    playlist_id: str | None = None  # Lookup key into the session's playlist table
    dont_skip: bool = False
    skippers: set[str] = field(default_factory=set, repr=False)

    def __setattr__(self, name, value):
        if name in _SONG_IDENTITY and name in self.__dict__:
            raise AttributeError(f"Song.{name} is read-only")
        super().__setattr__(name, value)

    def __delattr__(self, name):
        if name in _SONG_IDENTITY:
            raise AttributeError(f"Song.{name} is read-only")
        super().__delattr__(name)

    @property
    def filename(self) -> str:
        return f"{self.id}.m4a"

    @property
    def from_playlist(self) -> bool:
        return self.playlist_id is not None

    def announcement(self, playlist_title: str | None = None) -> "Announcement":
        """Build the payload the chat transport shows when this song starts."""
        return Announcement(
            thumbnail=self.thumbnail,
            id=self.id,
            title=self.title,
            duration=self.duration,
            submitter=self.submitter,
            playlist_title=playlist_title,
        )


@dataclass(eq=False)
class Playlist:
    """A YouTube playlist expanded into queued songs."""

    id: str
    title: str
    submitter: str
    songs: list[Song] = field(default_factory=list, repr=False)
    rejected: int = 0  # Entries dropped by the duration policy or failed lookups

    @property
    def total_seconds(self) -> int:
        return sum(song.total_seconds for song in self.songs)


@dataclass(frozen=True)
class Announcement:
    """Now-playing payload. Rendering is left to the chat transport."""

    thumbnail: str
    id: str
    title: str
    duration: str
    submitter: str
    playlist_title: str | None = None

    @property
    def url(self) -> str:
        return f"https://youtu.be/{self.id}"
