"""Tests for the vnsync CLI."""

import asyncio

import pytest
from conftest import FakeSocket, room_state, settle
from typer.testing import CliRunner

from vnsync import cli
from vnsync.client import VNSyncClient
from vnsync.socket_events import JOIN_ROOM, RoomState, TOGGLE_READY

runner = CliRunner()


def test_render_members():
    state = RoomState.model_validate(room_state(("alice", True), ("bob", False)))
    assert cli.render_members(state) == ["alice - ready", "bob - not ready"]


def test_render_members_empty_room():
    assert cli.render_members(RoomState.empty()) == []


@pytest.fixture
def scripted_cli(monkeypatch, clipboard_writer):
    """Run the CLI against a FakeSocket with scripted stdin commands."""
    sock = FakeSocket(auto_connect_event=True)
    commands: list[str] = []

    def make_client(config):
        return VNSyncClient(
            config=config,
            socket_factory=lambda _: sock,
            clipboard_writer=clipboard_writer,
        )

    def feed_commands(loop, queue):
        for command in commands:
            queue.put_nowait(command)

    monkeypatch.setattr(cli, "VNSyncClient", make_client)
    monkeypatch.setattr(cli, "_start_stdin_reader", feed_commands)
    return sock, commands


def test_main_joins_and_leaves(scripted_cli):
    sock, commands = scripted_cli
    sock.respond(JOIN_ROOM, {"status": "ok"})
    sock.respond(TOGGLE_READY, {"status": "ok"})
    commands.extend(["r", "q"])

    result = runner.invoke(
        cli.app, ["alice", "lobby", "--url", "http://coordinator.test"]
    )

    assert result.exit_code == 0, result.output
    assert "Left the room" in result.output
    assert sock.url == "http://coordinator.test"
    assert sock.calls_to(JOIN_ROOM) == [("alice", "lobby")]
    assert sock.shutdown_count == 1


def test_main_reports_join_failure(scripted_cli):
    sock, _ = scripted_cli
    sock.respond(JOIN_ROOM, {"status": "fail", "failMessage": "room full"})

    result = runner.invoke(
        cli.app, ["alice", "lobby", "--url", "http://coordinator.test"]
    )

    assert result.exit_code == 1
    assert "room full" in result.output


def test_main_rejects_invalid_url():
    result = runner.invoke(cli.app, ["alice", "lobby", "--url", "ftp://nowhere"])
    assert result.exit_code != 0


@pytest.mark.parametrize(
    "username,room", [("   ", "lobby"), ("alice", "")], ids=["blank-user", "empty-room"]
)
def test_main_reports_empty_names(scripted_cli, username, room):
    sock, _ = scripted_cli

    result = runner.invoke(cli.app, [username, room, "--url", "http://coordinator.test"])

    assert result.exit_code == 1
    assert "must not be empty" in result.output
    assert sock.url is None


@pytest.mark.asyncio
async def test_run_session_cancels_unanswered_commands_on_quit(
    monkeypatch, client, fake_socket
):
    released = []

    async def unanswered():
        try:
            await asyncio.Event().wait()
        finally:
            released.append(TOGGLE_READY)

    def drive(loop, queue):
        async def _drive():
            fake_socket.respond(JOIN_ROOM, {"status": "ok"})
            await fake_socket.fire("connect")
            queue.put_nowait("r")
            await settle(10)
            queue.put_nowait("q")

        loop.create_task(_drive())

    fake_socket.respond(TOGGLE_READY, unanswered)
    monkeypatch.setattr(cli, "_start_stdin_reader", drive)

    error = await cli.run_session(client, "alice", "lobby")

    assert error == ""
    assert fake_socket.calls_to(TOGGLE_READY) == [()]
    assert released == [TOGGLE_READY]
    leftover = [
        task
        for task in asyncio.all_tasks()
        if task.get_coro().__name__ == "_run_command" and not task.done()
    ]
    assert leftover == []
