import asyncio
import inspect
import typing as t
from collections import defaultdict
from unittest.mock import MagicMock

import pytest

from vnsync.client import VNSyncClient
from vnsync.config import VNSyncConfig
from vnsync.socket_events import JOIN_ROOM, ROOM_STATE_CHANGE


class FakeSocket:
    """In-memory stand-in for ``socketio.AsyncClient``.

    Acknowledgements are scripted per event with :meth:`respond` (a payload,
    or an async function awaited for one) or :meth:`hold` (resolved later by
    the test). Server pushes and connection signals are delivered with
    :meth:`fire`.
    """

    def __init__(self, auto_connect_event: bool = False):
        self.auto_connect_event = auto_connect_event
        self.handlers: dict[str, t.Callable] = {}
        self.connected = False
        self.url: str | None = None
        self.auth: t.Any = None
        self.connect_kwargs: dict = {}
        self.connect_error: Exception | None = None
        self.calls: list[tuple[str, tuple]] = []
        self.acks: dict[str, list] = defaultdict(list)
        self.shutdown_count = 0
        self._tasks: set[asyncio.Task] = set()

    def on(self, event, handler):
        self.handlers[event] = handler

    async def connect(self, url, auth=None, **kwargs):
        if self.connect_error is not None:
            raise self.connect_error
        self.url = url
        self.auth = auth
        self.connect_kwargs = kwargs
        self.connected = True
        if self.auto_connect_event:
            task = asyncio.create_task(self.fire("connect"))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def handshake_auth(self):
        return self.auth() if callable(self.auth) else self.auth

    def respond(self, event: str, payload: t.Any) -> None:
        self.acks[event].append(payload)

    def hold(self, event: str) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self.acks[event].append(future)
        return future

    def calls_to(self, event: str) -> list[tuple]:
        return [args for name, args in self.calls if name == event]

    async def call(self, event, data=None, namespace=None, timeout=60):
        self.calls.append((event, data))
        if not self.acks[event]:
            raise AssertionError(f"No acknowledgement scripted for '{event}'")
        response = self.acks[event].pop(0)
        if inspect.iscoroutinefunction(response):
            return await response()
        if isinstance(response, asyncio.Future):
            return await response
        if isinstance(response, Exception):
            raise response
        return response

    async def shutdown(self):
        self.shutdown_count += 1
        was_connected = self.connected
        self.connected = False
        if was_connected and "disconnect" in self.handlers:
            await self.fire("disconnect", "client disconnect")

    async def fire(self, event: str, *args):
        result = self.handlers[event](*args)
        if inspect.isawaitable(result):
            await result

    def fire_soon(self, event: str, *args) -> asyncio.Task:
        """Deliver ``event`` in its own task, like the socket library does."""
        return asyncio.create_task(self.fire(event, *args))


def room_state(*members: tuple[str, bool], clipboard: list[str] | None = None) -> dict:
    """Build a roomStateChange payload in the coordinator's wire format."""
    return {
        "membersState": [
            {"username": name, "isReady": ready} for name, ready in members
        ],
        "clipboard": clipboard or [],
    }


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def join_room(client: VNSyncClient, sock: FakeSocket, username="alice", room="lobby"):
    sock.respond(JOIN_ROOM, {"status": "ok"})
    await client.join(username, room)
    await sock.fire("connect")


async def push_state(sock: FakeSocket, *members, clipboard=None):
    await sock.fire(ROOM_STATE_CHANGE, room_state(*members, clipboard=clipboard))


@pytest.fixture
def config() -> VNSyncConfig:
    return VNSyncConfig(
        server_url="http://coordinator.test",
        reconnection_delay=0.5,
        reconnection_attempts=5,
        clipboard_interval=0.01,
        log_level="WARNING",
    )


@pytest.fixture
def fake_socket() -> FakeSocket:
    return FakeSocket()


@pytest.fixture
def clipboard_writer() -> MagicMock:
    return MagicMock(return_value=True)


@pytest.fixture
def client(config, fake_socket, clipboard_writer) -> VNSyncClient:
    return VNSyncClient(
        config=config,
        socket_factory=lambda _: fake_socket,
        clipboard_writer=clipboard_writer,
    )
