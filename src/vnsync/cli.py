import asyncio
import logging
import sys
import threading

import typer

from vnsync.client import VNSyncClient
from vnsync.config import VNSyncConfig, get_config
from vnsync.exceptions import ContractViolation, InvalidJoinRequest
from vnsync.socket_events import RoomState

app = typer.Typer()

HELP_TEXT = "Commands: r = toggle ready, a = toggle auto-ready, c = toggle clipboard copy, q = leave"


def render_members(state: RoomState) -> list[str]:
    """One line per member, in the coordinator's order."""
    return [
        f"{user.username} - {'ready' if user.is_ready else 'not ready'}"
        for user in state.members_state
    ]


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
    """Feed stdin lines into ``queue`` from a daemon thread."""

    def _read():
        for line in sys.stdin:
            loop.call_soon_threadsafe(queue.put_nowait, line.strip().lower())
        loop.call_soon_threadsafe(queue.put_nowait, "q")

    threading.Thread(target=_read, daemon=True, name="stdin-reader").start()


async def _run_command(client: VNSyncClient, command: str) -> None:
    """Execute one command line other than quitting."""
    try:
        if command == "r":
            await client.toggle_ready()
        elif command == "a":
            await client.set_auto_ready(not client.auto_ready)
            typer.echo(f"Auto ready: {'on' if client.auto_ready else 'off'}")
        elif command == "c":
            client.set_copy_to_clipboard(not client.copy_to_clipboard)
            typer.echo(f"Copy to clipboard: {'on' if client.copy_to_clipboard else 'off'}")
        elif command:
            typer.echo(HELP_TEXT)
    except ContractViolation as e:
        typer.echo(f"✗ {e}", err=True)


async def run_session(
    client: VNSyncClient,
    username: str,
    room: str,
    auto_ready: bool = False,
    copy: bool = False,
) -> str:
    """Join ``room`` and process commands until the session ends.

    Returns the last error of the session, an empty string if there is none.
    """
    ended = asyncio.Event()
    commands: asyncio.Queue[str] = asyncio.Queue()
    pending: set[asyncio.Task] = set()

    async def _show(state: RoomState) -> None:
        typer.echo(f"Room {client.room_name or room}:")
        for line in render_members(state):
            typer.echo(f"  {line}")
        if state.clipboard:
            typer.echo(f"  Clipboard: {state.current_clipboard}")

    client.room.add_listener(_show)
    client.session.add_teardown_listener(ended.set)

    async with client:
        client.set_copy_to_clipboard(copy)
        await client.set_auto_ready(auto_ready)
        await client.join(username, room)
        if ended.is_set():
            return client.last_error

        typer.echo(HELP_TEXT)
        _start_stdin_reader(asyncio.get_running_loop(), commands)
        while not ended.is_set():
            get_command = asyncio.ensure_future(commands.get())
            wait_ended = asyncio.ensure_future(ended.wait())
            await asyncio.wait(
                {get_command, wait_ended}, return_when=asyncio.FIRST_COMPLETED
            )
            wait_ended.cancel()
            if not get_command.done():
                get_command.cancel()
                break
            command = get_command.result()
            if command == "q":
                break
            task = asyncio.create_task(_run_command(client, command))
            pending.add(task)
            task.add_done_callback(pending.discard)

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    return client.last_error


@app.command()
def main(
    username: str = typer.Argument(..., help="Name shown to the other room members."),
    room: str = typer.Argument(..., help="Name of the room to join."),
    url: str | None = typer.Option(
        None,
        "--url",
        envvar="VNSYNC_SERVER_URL",
        help="Socket.IO URL of the room coordinator.",
    ),
    auto_ready: bool = typer.Option(
        False,
        "--auto-ready/--no-auto-ready",
        help="Mark yourself ready again whenever the room resets readiness.",
    ),
    copy: bool = typer.Option(
        False,
        "--copy/--no-copy",
        help="Copy the newest shared clipboard entry to the local clipboard.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """
    Join a VNSync room and follow its readiness and clipboard feed.
    """
    config = VNSyncConfig(server_url=url) if url else get_config()

    log_level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper())
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    client = VNSyncClient(config=config)
    try:
        error = asyncio.run(run_session(client, username, room, auto_ready, copy))
    except InvalidJoinRequest as e:
        typer.echo(f"✗ Error: {e}", err=True)
        raise typer.Exit(1)
    if error:
        typer.echo(f"✗ Error: {error}", err=True)
        raise typer.Exit(1)
    typer.echo("✓ Left the room")


if __name__ == "__main__":
    app()
