import logging
import shutil
import subprocess
from pathlib import Path
from typing import Callable

from groupdj.errors import DeleteFailed, DownloadFailed
from groupdj.models.song import Song

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 300


class SongCache:
    """Local m4a files for queued songs, fetched with yt-dlp."""

    def __init__(
        self,
        directory: Path,
        enabled: bool = False,
        on_cached: Callable[[Path], None] | None = None,
    ):
        self.directory = Path(directory)
        self.enabled = enabled
        self.on_cached = on_cached  # Eviction hook, run after each download when caching

    def path_for(self, song: Song) -> Path:
        return self.directory / song.filename

    def download(self, song: Song) -> Path:
        """Download a song unless it is already on disk. Returns the local path."""
        path = self.path_for(song)
        if path.exists():
            logger.debug("Cache hit for %s", song.id)
            return path

        self.directory.mkdir(parents=True, exist_ok=True)
        ytdlp_path = shutil.which("yt-dlp") or "yt-dlp"
        logger.info("Downloading %s (%s)", song.id, song.title)

        try:
            result = subprocess.run(
                [
                    ytdlp_path,
                    "--output", str(path),
                    "--format", "m4a",
                    "--quiet",
                    "--",
                    song.id,
                ],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                check=False,
                timeout=DOWNLOAD_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error("yt-dlp could not run for %s: %s", song.id, e)
            raise DownloadFailed(f"Song download failed: {song.title}") from e

        if result.returncode != 0:
            logger.error(
                "yt-dlp exited with %s for %s: %s",
                result.returncode,
                song.id,
                result.stderr.decode(errors="replace").strip(),
            )
            raise DownloadFailed(f"Song download failed: {song.title}")

        if self.enabled and self.on_cached:
            self.on_cached(self.directory)
        return path

    def delete(self, song: Song) -> None:
        """Remove a played song's file. Kept on disk when the cache is enabled."""
        if self.enabled:
            return

        path = self.path_for(song)
        if not path.exists():
            return
        try:
            path.unlink()
        except OSError as e:
            logger.error("Could not delete %s: %s", path, e)
            raise DeleteFailed(f"Error occurred while deleting {path.name}.") from e
