import re

from groupdj.errors import MalformedDuration

# ISO 8601 as the YouTube Data API reports it: PT#H#M#S, or P0D for live streams.
_DURATION_RE = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_duration(raw: str) -> tuple[int, str]:
    """
    Parse a provider duration string into (total_seconds, display).

    Display is "m:ss", or "h:mm:ss" once the duration reaches an hour.
    Raises MalformedDuration for anything outside the provider's format.
    """
    match = _DURATION_RE.match(raw or "")
    if not match or not any(match.groupdict().values()):
        raise MalformedDuration(f"Unrecognised duration: {raw!r}")
    if raw.endswith("T"):
        raise MalformedDuration(f"Duration has no components after T: {raw!r}")

    parts = {k: int(v) if v else 0 for k, v in match.groupdict().items()}
    total_seconds = (
        parts["days"] * 86400
        + parts["hours"] * 3600
        + parts["minutes"] * 60
        + parts["seconds"]
    )
    return total_seconds, format_duration(total_seconds)


def format_duration(total_seconds: int) -> str:
    """Format seconds as m:ss or h:mm:ss."""
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"
