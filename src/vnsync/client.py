
from vnsync.clipboard import ClipboardMirror, ClipboardWriter, write_system_clipboard
from vnsync.config import VNSyncConfig, get_config
from vnsync.readiness import ReadinessController, ReadinessState
from vnsync.room import RoomSynchronizer
from vnsync.session import SessionManager, SessionPhase, SocketFactory
from vnsync.socket_events import RoomState, RoomUser



class VNSyncClient:
    """A client for a VNSync room.

    Owns the session, the room snapshot, the readiness controller and the
    clipboard mirror for one local participant. Callbacks registered on the
    channel read the current attribute values whenever they run.

    Usage:
        async with VNSyncClient() as client:
            await client.join("alice", "lobby")
            await client.set_auto_ready(True)
    """

    def __init__(
        self,
        config: VNSyncConfig | None = None,
        socket_factory: SocketFactory | None = None,
        clipboard_writer: ClipboardWriter = write_system_clipboard,
    ):
        self.config = config or get_config()
        self.room = RoomSynchronizer()
        self.session = SessionManager(
            self.room, config=self.config, socket_factory=socket_factory
        )
        self.readiness = ReadinessController(self.session, self.room)
        self.clipboard = ClipboardMirror(
            source=self._current_clipboard,
            writer=clipboard_writer,
            interval=self.config.clipboard_interval,
        )

    def _current_clipboard(self) -> str | None:
        # the snapshot is kept while reconnecting, so only a closed session hides it
        if self.session.phase is SessionPhase.DISCONNECTED:
            return None
        return self.room.state.current_clipboard

    @property
    def phase(self) -> SessionPhase:
        return self.session.phase

    @property
    def username(self) -> str:
        return self.session.username

    @property
    def room_name(self) -> str:
        return self.session.room_name

    @property
    def last_error(self) -> str:
        return self.session.last_error

    @property
    def room_state(self) -> RoomState:
        return self.room.state

    @property
    def client_user(self) -> RoomUser | None:
        """The local participant's record, only while in the room."""
        if not self.session.in_room:
            return None
        return self.room.local_user

    @property
    def is_busy(self) -> bool:
        return (
            self.session.phase in (SessionPhase.CONNECTING, SessionPhase.JOINING)
            or self.readiness.state is ReadinessState.TOGGLING
        )

    @property
    def auto_ready(self) -> bool:
        return self.readiness.auto_ready

    @property
    def copy_to_clipboard(self) -> bool:
        return self.clipboard.enabled

    async def join(self, username: str, room_name: str) -> None:
        await self.session.join(username, room_name)

    async def leave(self) -> None:
        await self.session.leave()

    async def toggle_ready(self) -> None:
        await self.readiness.toggle_ready()

    async def set_auto_ready(self, enabled: bool) -> None:
        await self.readiness.set_auto_ready(enabled)

    def set_copy_to_clipboard(self, enabled: bool) -> None:
        self.clipboard.enabled = enabled

    def start(self) -> None:
        """Start the clipboard mirror on the running event loop."""
        self.clipboard.start()

    async def close(self) -> None:
        await self.clipboard.stop()
        await self.session.leave()

    async def __aenter__(self) -> "VNSyncClient":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
