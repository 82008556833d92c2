import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_CACHE_DIR = Path.home() / ".groupdj" / "songs"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings. Never mutated after startup."""

    youtube_api_key: str = ""
    max_song_duration: int = 0  # Seconds, 0 = unlimited
    skip_ratio: float = 0.5
    playlist_skip_ratio: float = 0.5
    cache_enabled: bool = False
    cache_dir: Path = DEFAULT_CACHE_DIR
    discord_token: str | None = None
    test_guild_id: int | None = None

    def __post_init__(self):
        if self.max_song_duration < 0:
            raise ValueError("max_song_duration must be 0 (unlimited) or positive")
        for name in ("skip_ratio", "playlist_skip_ratio"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

    @property
    def duration_unlimited(self) -> bool:
        return self.max_song_duration == 0

    def accepts_duration(self, total_seconds: int) -> bool:
        """Check a song length against the maximum duration policy."""
        return self.duration_unlimited or total_seconds <= self.max_song_duration

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> "Settings":
        """Build settings from the environment, reading a .env file first."""
        load_dotenv(dotenv_path)

        guild_id = os.getenv("TEST_GUILD_ID")
        return cls(
            youtube_api_key=os.getenv("YOUTUBE_API_KEY", ""),
            max_song_duration=int(os.getenv("MAX_SONG_DURATION", "0")),
            skip_ratio=float(os.getenv("SKIP_RATIO", "0.5")),
            playlist_skip_ratio=float(os.getenv("PLAYLIST_SKIP_RATIO", "0.5")),
            cache_enabled=os.getenv("CACHE_ENABLED", "false").strip().lower() in _TRUE_VALUES,
            cache_dir=Path(os.getenv("CACHE_DIR", str(DEFAULT_CACHE_DIR))).expanduser(),
            discord_token=os.getenv("DISCORD_TOKEN"),
            test_guild_id=int(guild_id) if guild_id else None,
        )
