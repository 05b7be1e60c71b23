"""Command-line interface for ytchat."""

import asyncio
import logging
import sys
import webbrowser
from pathlib import Path

import click
from dotenv import load_dotenv

from ytchat.chat import ChatMessage, YoutubeChatError
from ytchat.client import YoutubeChatClient
from ytchat.config import load_config
from ytchat.models import Config

logger = logging.getLogger(__name__)


def format_message(message: ChatMessage) -> str:
    """Format a chat message for the console, in local time."""
    local_timestamp = message.timestamp.astimezone()
    return f"{message.display_name} ({local_timestamp.strftime('%I:%M:%S %p')}): {message.content}\n"


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """ytchat - Follow the live chat of a YouTube stream from the terminal."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    load_dotenv()


@cli.command()
@click.argument("stream_url")
@click.option(
    "--config",
    type=click.Path(path_type=Path),
    default="config.yaml",
    help="Path to config YAML file",
)
@click.option("--oauth", is_flag=True, help="Authorize with OAuth instead of an API key")
@click.option("--no-browser", is_flag=True, help="Print the authorization URL without opening it")
def watch(stream_url: str, config: Path, oauth: bool, no_browser: bool):
    """Print live chat messages of STREAM_URL until interrupted."""
    cfg = load_config(config)
    use_oauth = oauth or not cfg.api_key

    if use_oauth and not cfg.client_id:
        click.echo(
            "Set YT_API_KEY to a YouTube Data API key, or YT_CLIENT_ID "
            "(and YT_CLIENT_SECRET) to authorize with OAuth",
            err=True,
        )
        sys.exit(1)

    try:
        asyncio.run(_watch(cfg, stream_url, use_oauth, open_browser=not no_browser))
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, stopping")
    except YoutubeChatError as e:
        click.echo(f"Failed to connect to live stream: {e}", err=True)
        sys.exit(1)


async def _watch(cfg: Config, stream_url: str, use_oauth: bool, open_browser: bool) -> None:
    async with YoutubeChatClient.from_config(cfg, use_oauth=use_oauth) as client:

        @client.event
        async def on_messages(messages):
            for message in messages:
                click.echo(format_message(message))

        @client.event
        async def on_error(error):
            click.echo(f"Request failed: {error}", err=True)

        if use_oauth:
            auth_url = await client.generate_auth_url()
            click.echo("Open this URL in your browser to authorize access:")
            click.echo(f"\n   {auth_url}\n")
            if open_browser:
                webbrowser.open(auth_url)
            await client.wait_for_authorization()
            click.echo("Authorization complete")

        stream_info = await client.connect(stream_url)
        click.echo(f"Connected to: {stream_info.title}\n")

        # Poll until interrupted
        await asyncio.Event().wait()


@cli.command()
@click.argument("handle")
@click.option(
    "--config",
    type=click.Path(path_type=Path),
    default="config.yaml",
    help="Path to config YAML file",
)
def live(handle: str, config: Path):
    """List the live broadcasts of the channel with HANDLE (e.g. @name)."""
    cfg = load_config(config)
    if not cfg.api_key:
        click.echo("Set YT_API_KEY to a YouTube Data API key", err=True)
        sys.exit(1)

    try:
        video_ids = asyncio.run(_live(cfg, handle))
    except YoutubeChatError as e:
        click.echo(f"Failed to list live streams: {e}", err=True)
        sys.exit(1)

    if not video_ids:
        click.echo(f"{handle} is not live")
        return
    for video_id in video_ids:
        click.echo(f"https://www.youtube.com/watch?v={video_id}")


async def _live(cfg: Config, handle: str) -> list[str]:
    async with YoutubeChatClient.from_config(cfg) as client:
        return await client.get_live_streams(handle)


def main():
    cli()


if __name__ == "__main__":
    main()
