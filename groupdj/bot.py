import asyncio
import logging

import discord
from discord import app_commands

from groupdj.clients.downloader import SongCache
from groupdj.clients.youtube_api import YouTubeDataClient
from groupdj.config import Settings
from groupdj.context import SessionContext
from groupdj.errors import (
    DownloadFailed,
    DurationExceeded,
    GroupDJError,
    PlaybackFailed,
    ResolverError,
    VoteError,
)
from groupdj.models.song import Announcement, Playlist, Song
from groupdj.music.player import Player, VoiceAudio
from groupdj.music.queue import SongQueue
from groupdj.music.voting import SkipVoteManager
from groupdj.resolver import Resolver
from groupdj.ui.embeds import (
    added_to_queue_embed,
    error_embed,
    now_playing_embed,
    playlist_added_embed,
    queue_embed,
    vote_embed,
)

logger = logging.getLogger(__name__)


class GuildSession:
    """Queue, votes and player for one guild's voice channel."""

    def __init__(self, settings: Settings, youtube: YouTubeDataClient):
        self.context = SessionContext(settings)
        self.queue = SongQueue(self.context)
        self.votes = SkipVoteManager(self.context)
        self.resolver = Resolver(youtube, self.queue, self.context)
        self.cache = SongCache(settings.cache_dir, enabled=settings.cache_enabled)
        self.player: Player | None = None
        self.text_channel: discord.abc.Messageable | None = None

    def close(self) -> None:
        self.queue.clear()
        self.context.close()


class SessionManager:
    """Manages sessions for all guilds."""

    def __init__(self, settings: Settings, youtube: YouTubeDataClient):
        self._settings = settings
        self._youtube = youtube
        self._sessions: dict[int, GuildSession] = {}

    def get(self, guild_id: int) -> GuildSession:
        """Get or create a session for a guild."""
        if guild_id not in self._sessions:
            self._sessions[guild_id] = GuildSession(self._settings, self._youtube)
        return self._sessions[guild_id]

    def remove(self, guild_id: int) -> None:
        """Close a guild's session (call when bot leaves voice)."""
        session = self._sessions.pop(guild_id, None)
        if session:
            session.close()


class MusicBot(discord.Client):
    def __init__(self, settings: Settings):
        intents = discord.Intents.default()
        intents.voice_states = True
        super().__init__(intents=intents)

        self.settings = settings
        self.tree = app_commands.CommandTree(self)
        self.youtube = YouTubeDataClient(settings.youtube_api_key)
        self.sessions = SessionManager(settings, self.youtube)

    async def setup_hook(self):
        # Guild-specific sync is instant; global sync can take up to an hour
        if self.settings.test_guild_id:
            guild = discord.Object(id=self.settings.test_guild_id)
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
        else:
            await self.tree.sync()

    async def close(self):
        self.youtube.close()
        await super().close()

    def get_player(self, session: GuildSession, voice_client: discord.VoiceClient) -> Player:
        """Create the session's player on first use."""
        if session.player is None:
            loop = self.loop

            def on_song_start(announcement: Announcement) -> None:
                if session.text_channel:
                    asyncio.run_coroutine_threadsafe(
                        session.text_channel.send(embed=now_playing_embed(announcement)), loop
                    )

            def on_song_end(song: Song) -> None:
                asyncio.run_coroutine_threadsafe(self.advance(session), loop)

            session.player = Player(
                queue=session.queue,
                cache=session.cache,
                audio=VoiceAudio(voice_client),
                playlists=session.context.playlists,
                on_song_start=on_song_start,
                on_song_end=on_song_end,
            )
        return session.player

    async def advance(self, session: GuildSession) -> Song | None:
        """Play the next song, moving past songs that fail to download or start."""
        while True:
            try:
                return await asyncio.to_thread(session.player.play_next)
            except (DownloadFailed, PlaybackFailed) as e:
                if session.text_channel:
                    await session.text_channel.send(embed=error_embed(str(e)))


settings = Settings.from_env()
bot = MusicBot(settings)


def listener_count(voice_client: discord.VoiceClient | None) -> int:
    """Count the people (not bots) in the bot's voice channel."""
    if not voice_client or not voice_client.channel:
        return 0
    return sum(1 for member in voice_client.channel.members if not member.bot)


async def ensure_voice(interaction: discord.Interaction) -> discord.VoiceClient | None:
    """Ensure the bot is in the user's voice channel. Returns VoiceClient or None."""
    if not interaction.user.voice or not interaction.user.voice.channel:
        await interaction.response.send_message(
            embed=error_embed("You must be in a voice channel."),
            ephemeral=True,
        )
        return None

    user_channel = interaction.user.voice.channel
    voice_client = interaction.guild.voice_client

    if voice_client is None:
        voice_client = await user_channel.connect()
    elif voice_client.channel != user_channel:
        await voice_client.move_to(user_channel)

    return voice_client


@bot.tree.command(name="play", description="Queue a YouTube video or playlist")
@app_commands.describe(query="YouTube video or playlist URL, or a video ID")
async def play(interaction: discord.Interaction, query: str):
    voice_client = await ensure_voice(interaction)
    if not voice_client:
        return

    await interaction.response.defer()

    session = bot.sessions.get(interaction.guild_id)
    session.text_channel = interaction.channel
    player = bot.get_player(session, voice_client)
    submitter = interaction.user.display_name

    try:
        submission = await asyncio.to_thread(session.resolver.submit, submitter, query)
    except (DurationExceeded, ResolverError) as e:
        await interaction.followup.send(embed=error_embed(str(e)))
        return
    except GroupDJError as e:
        logger.warning("Submission %r from %s failed: %s", query, submitter, e)
        await interaction.followup.send(embed=error_embed("Could not queue that."))
        return

    if isinstance(submission.item, Playlist):
        await interaction.followup.send(embed=playlist_added_embed(submission.item))
    else:
        await interaction.followup.send(
            embed=added_to_queue_embed(submission.item, submission.position)
        )

    if not player.is_playing() and session.queue.current is None:
        await bot.advance(session)


@bot.tree.command(name="skip", description="Vote to skip the current song (or its playlist)")
async def skip(interaction: discord.Interaction):
    session = bot.sessions.get(interaction.guild_id)
    song = session.queue.current
    if not song or not session.player:
        await interaction.response.send_message(
            embed=error_embed("Nothing is playing."),
            ephemeral=True,
        )
        return
    if song.dont_skip:
        await interaction.response.send_message(
            embed=error_embed(f"**{song.title}** cannot be skipped."),
            ephemeral=True,
        )
        return

    try:
        votes = session.votes.add_skip(song, interaction.user.display_name)
    except VoteError as e:
        await interaction.response.send_message(embed=error_embed(str(e)), ephemeral=True)
        return

    listeners = listener_count(interaction.guild.voice_client)
    passed = session.votes.skip_reached(song, listeners)
    if song.from_playlist:
        playlist = session.context.playlists.get(song.playlist_id)
        title = playlist.title if playlist else song.title
        ratio = bot.settings.playlist_skip_ratio
    else:
        title = song.title
        ratio = bot.settings.skip_ratio

    if passed:
        if song.from_playlist:
            session.queue.remove_playlist(song.playlist_id)
        session.player.skip()

    await interaction.response.send_message(
        embed=vote_embed(title, votes, listeners, ratio, passed)
    )


@bot.tree.command(name="unskip", description="Withdraw your skip vote")
async def unskip(interaction: discord.Interaction):
    session = bot.sessions.get(interaction.guild_id)
    song = session.queue.current
    if not song:
        await interaction.response.send_message(
            embed=error_embed("Nothing is playing."),
            ephemeral=True,
        )
        return

    try:
        session.votes.remove_skip(song, interaction.user.display_name)
    except VoteError as e:
        await interaction.response.send_message(embed=error_embed(str(e)), ephemeral=True)
        return
    await interaction.response.send_message("Skip vote withdrawn.", ephemeral=True)


@bot.tree.command(name="forceskip", description="Skip the current song without a vote")
@app_commands.default_permissions(manage_guild=True)
async def forceskip(interaction: discord.Interaction):
    session = bot.sessions.get(interaction.guild_id)
    song = session.queue.current
    if not song or not session.player:
        await interaction.response.send_message(
            embed=error_embed("Nothing is playing."),
            ephemeral=True,
        )
        return

    session.player.skip()
    await interaction.response.send_message(f"Skipped **{song.title}**.")


@bot.tree.command(name="queue", description="Show the current queue")
async def show_queue(interaction: discord.Interaction):
    session = bot.sessions.get(interaction.guild_id)
    await interaction.response.send_message(
        embed=queue_embed(session.queue.get_list(), session.queue.current)
    )


@bot.tree.command(name="stop", description="Stop playback and clear the queue")
async def stop(interaction: discord.Interaction):
    voice_client = interaction.guild.voice_client
    if voice_client and voice_client.is_connected():
        await voice_client.disconnect()
    bot.sessions.remove(interaction.guild_id)
    await interaction.response.send_message("Stopped playback and cleared the queue.")


@bot.event
async def on_ready():
    logger.info("Logged in as %s (ID: %s)", bot.user, bot.user.id)


def main():
    if not settings.discord_token:
        raise ValueError("DISCORD_TOKEN environment variable is not set")
    bot.run(settings.discord_token, root_logger=True)


if __name__ == "__main__":
    main()
