import discord

from groupdj.models.duration import format_duration
from groupdj.models.song import Announcement, Playlist, Song


def now_playing_embed(announcement: Announcement) -> discord.Embed:
    """Create an embed for the song that just started."""
    embed = discord.Embed(
        title="Now Playing",
        description=f"**[{announcement.title}]({announcement.url})** ({announcement.duration})",
        color=discord.Color.green(),
    )
    if announcement.thumbnail:
        embed.set_thumbnail(url=announcement.thumbnail)
    if announcement.playlist_title:
        embed.add_field(name="Playlist", value=announcement.playlist_title, inline=True)

    embed.set_footer(text=f"Added by {announcement.submitter}")
    return embed


def added_to_queue_embed(song: Song, position: int) -> discord.Embed:
    """Create an embed for a song added to the queue."""
    embed = discord.Embed(
        title="Added to Queue",
        description=f"**{song.title}**",
        color=discord.Color.blue(),
    )
    embed.add_field(name="Position", value=str(position + 1), inline=True)
    embed.add_field(name="Duration", value=song.duration, inline=True)

    if song.thumbnail:
        embed.set_thumbnail(url=song.thumbnail)

    embed.set_footer(text=f"Added by {song.submitter}")
    return embed


def playlist_added_embed(playlist: Playlist) -> discord.Embed:
    """Embed for a playlist expanded into the queue."""
    desc = f"**{len(playlist.songs)} songs** from **{playlist.title}** added to queue"
    if playlist.rejected > 0:
        desc += f" ({playlist.rejected} skipped: too long or unavailable)"

    embed = discord.Embed(
        title="Playlist Loaded",
        description=desc,
        color=discord.Color.blue(),
    )
    embed.add_field(name="Duration", value=format_duration(playlist.total_seconds), inline=True)

    if playlist.songs:
        preview = "\n".join(f"`{i + 1}.` {s.title}" for i, s in enumerate(playlist.songs[:5]))
        if len(playlist.songs) > 5:
            preview += f"\n*...and {len(playlist.songs) - 5} more*"
        embed.add_field(name="Songs", value=preview, inline=False)

    embed.set_footer(text=f"Added by {playlist.submitter}")
    return embed


def queue_embed(songs: list[Song], current: Song | None) -> discord.Embed:
    """Create an embed showing the current queue."""
    embed = discord.Embed(
        title="Queue",
        color=discord.Color.purple(),
    )

    if current:
        embed.add_field(
            name="Now Playing",
            value=f"**{current.title}** [{current.duration}] added by {current.submitter}",
            inline=False,
        )

    if songs:
        queue_text = "\n".join(
            f"`{i + 1}.` **{s.title}** [{s.duration}] added by {s.submitter}"
            for i, s in enumerate(songs[:10])  # Show max 10 songs
        )
        if len(songs) > 10:
            queue_text += f"\n\n*...and {len(songs) - 10} more*"
        embed.add_field(name="Up Next", value=queue_text, inline=False)
    elif not current:
        embed.description = "The queue is empty."

    total = len(songs) + (1 if current else 0)
    embed.set_footer(text=f"{total} song(s) in queue")
    return embed


def vote_embed(title: str, votes: int, listeners: int, ratio: float, passed: bool) -> discord.Embed:
    """Show skip vote progress for a song or playlist."""
    if passed:
        return discord.Embed(
            title="Skipped",
            description=f"**{title}** was skipped by vote.",
            color=discord.Color.orange(),
        )
    return discord.Embed(
        title="Skip Vote",
        description=f"**{title}**: {votes} of {listeners} listeners voted "
        f"(needs {ratio:.0%}).",
        color=discord.Color.light_grey(),
    )


def error_embed(message: str) -> discord.Embed:
    """Create an error embed."""
    return discord.Embed(
        title="Error",
        description=message,
        color=discord.Color.red(),
    )
