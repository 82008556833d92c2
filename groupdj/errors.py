class GroupDJError(Exception):
    """Base class for all queue, vote and cache failures."""


class ResolverError(GroupDJError):
    """The metadata provider could not answer a lookup."""


class InvalidCredentials(ResolverError):
    """The provider rejected the API key (HTTP 403)."""


class InvalidReference(ResolverError):
    """The provider does not know the requested video or playlist."""


class ProviderUnavailable(ResolverError):
    """The request never produced an HTTP response."""


class MalformedDuration(GroupDJError, ValueError):
    """A duration string did not match the provider's format."""


class DurationExceeded(GroupDJError):
    """A song is longer than the configured maximum."""

    def __init__(self, title: str, total_seconds: int, limit: int):
        super().__init__(
            f"{title or 'Song'} is {total_seconds}s long, the limit is {limit}s."
        )
        self.title = title
        self.total_seconds = total_seconds
        self.limit = limit


class VoteError(GroupDJError):
    """A skip vote could not be added or removed."""


class DuplicateVote(VoteError):
    def __init__(self, voter: str):
        super().__init__(f"{voter} has already voted to skip.")
        self.voter = voter


class NoSuchVote(VoteError):
    def __init__(self, voter: str):
        super().__init__(f"{voter} has not voted to skip.")
        self.voter = voter


class CacheError(GroupDJError):
    """A cached audio file could not be written or removed."""


class DownloadFailed(CacheError):
    pass


class DeleteFailed(CacheError):
    pass


class PlaybackFailed(GroupDJError):
    """The audio engine could not start a song."""
