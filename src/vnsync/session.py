import dataclasses
import enum
import logging
import typing as t

import socketio

from vnsync.config import VNSyncConfig, get_config
from vnsync.exceptions import (
    CallAbandoned,
    InvalidJoinRequest,
    SessionBusyError,
    TransportFault,
)
from vnsync.remote import RemoteCaller
from vnsync.room import RoomSynchronizer
from vnsync.socket_events import (
    JOIN_ROOM,
    ROOM_STATE_CHANGE,
    SESSION_ID,
    FailResult,
)

log = logging.getLogger(__name__)
socketio_log = logging.getLogger("vnsync.socketio")

# Disconnect reasons sent when the coordinator closed the session on purpose.
# The first spelling is the JavaScript client's, the second python-socketio's.
EVICTION_REASONS = frozenset({"io server disconnect", "server disconnect"})
CLIENT_DISCONNECT_REASONS = frozenset({"io client disconnect", "client disconnect"})


class SessionPhase(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    JOINING = "joining"
    IN_ROOM = "in_room"


@dataclasses.dataclass(frozen=True)
class SessionState:
    phase: SessionPhase
    resume_token: str | None = None


SocketFactory = t.Callable[[VNSyncConfig], socketio.AsyncClient]
EnterListener = t.Callable[[], t.Awaitable[None]]
TeardownListener = t.Callable[[], None]
DropListener = t.Callable[[], None]


def create_socket(config: VNSyncConfig) -> socketio.AsyncClient:
    """Create a channel with a fixed-delay, bounded reconnection policy."""
    return socketio.AsyncClient(
        reconnection=True,
        reconnection_attempts=config.reconnection_attempts,
        reconnection_delay=config.reconnection_delay,
        reconnection_delay_max=config.reconnection_delay,
        randomization_factor=0,
        logger=socketio_log,
    )


class SessionManager:
    """Owns the channel to the coordinator and the room membership on it.

    One channel is created per call to :meth:`join`. Transient drops are
    left to the channel's reconnection policy: the next ``connect`` joins
    the room again and presents the resume token in the handshake.
    Eviction by the coordinator, :meth:`leave` and :meth:`abort` tear the
    session down completely.
    """

    def __init__(
        self,
        room: RoomSynchronizer,
        config: VNSyncConfig | None = None,
        socket_factory: SocketFactory | None = None,
    ):
        self.room = room
        self.config = config or get_config()
        self.socket_factory = socket_factory or create_socket

        self.phase = SessionPhase.DISCONNECTED
        self.resume_token: str | None = None
        self.username = ""
        self.room_name = ""
        self.last_error = ""
        self.sio: socketio.AsyncClient | None = None
        self.remote: RemoteCaller | None = None

        self._requested_room = ""
        self._join_seq = 0
        self._enter_listeners: list[EnterListener] = []
        self._teardown_listeners: list[TeardownListener] = []
        self._drop_listeners: list[DropListener] = []

    @property
    def state(self) -> SessionState:
        return SessionState(phase=self.phase, resume_token=self.resume_token)

    @property
    def in_room(self) -> bool:
        return self.phase is SessionPhase.IN_ROOM

    def add_enter_listener(self, callback: EnterListener) -> None:
        """Run ``callback`` every time the session (re)enters the room."""
        self._enter_listeners.append(callback)

    def add_teardown_listener(self, callback: TeardownListener) -> None:
        """Run ``callback`` when the session is torn down."""
        self._teardown_listeners.append(callback)

    def add_drop_listener(self, callback: DropListener) -> None:
        """Run ``callback`` when the connection drops and reconnection starts."""
        self._drop_listeners.append(callback)

    def _register_handlers(self, sio: socketio.AsyncClient) -> None:
        sio.on("connect", self._on_connect)
        sio.on("disconnect", self._on_disconnect)
        sio.on("connect_error", self._on_connect_error)
        sio.on(SESSION_ID, self._on_session_id)
        sio.on(ROOM_STATE_CHANGE, self.room.on_room_state_change)

    def _handshake_auth(self) -> dict | None:
        """Evaluated by the channel on every (re)connect attempt."""
        if self.resume_token is None:
            return None
        return {"sessionId": self.resume_token}

    async def join(self, username: str, room_name: str) -> None:
        """Open a channel and join ``room_name`` as ``username``.

        Returns once the channel has been opened, the room itself is joined
        from the ``connect`` handler.

        Raises
        ------
        InvalidJoinRequest
            If either value is empty after trimming.
        SessionBusyError
            If a session is already connecting or in a room.
        """
        username = username.strip()
        room_name = room_name.strip()
        if not username or not room_name:
            raise InvalidJoinRequest("Username and room name must not be empty.")
        if self.phase is not SessionPhase.DISCONNECTED:
            raise SessionBusyError(
                f"Cannot join '{room_name}' while the session is {self.phase.value}."
            )

        self.username = username
        self._requested_room = room_name
        self.room.username = username
        self.room.reset()
        self.phase = SessionPhase.CONNECTING

        sio = self.socket_factory(self.config)
        self.sio = sio
        self.remote = RemoteCaller(sio)
        self._register_handlers(sio)

        log.info(f"Connecting to {self.config.server_url} as '{username}'")
        try:
            await sio.connect(
                self.config.server_url,
                auth=self._handshake_auth,
                wait=False,
                retry=True,
            )
        except socketio.exceptions.ConnectionError as e:
            if self.sio is sio:
                log.error(f"Could not connect to {self.config.server_url}: {e}")
                await self._teardown(error=f"Could not connect: {e}")

    async def leave(self) -> None:
        """Leave the room and forget the resume token."""
        if self.phase is SessionPhase.DISCONNECTED:
            return
        log.info(f"Leaving room '{self.room_name or self._requested_room}'")
        await self._teardown()

    async def abort(self, message: str) -> None:
        """Record ``message`` as the user-visible error and close the session."""
        log.error(f"Session aborted: {message}")
        await self._teardown(error=message)

    async def _teardown(self, error: str | None = None) -> None:
        sio, remote = self.sio, self.remote
        self.sio = None
        self.remote = None
        if remote is not None:
            remote.abandon_pending()
        self.phase = SessionPhase.DISCONNECTED
        self.room_name = ""
        self.resume_token = None
        self.room.reset()
        if error is not None:
            self.last_error = error
        for callback in self._teardown_listeners:
            callback()
        if sio is not None:
            # also stops a pending reconnection loop
            await sio.shutdown()

    async def _on_connect(self):
        """Handle connection (and every reconnection) to the coordinator."""
        log.debug("Connected to coordinator")
        if self.phase is SessionPhase.IN_ROOM:
            return
        sio, remote = self.sio, self.remote
        if sio is None or remote is None:
            return

        self.phase = SessionPhase.JOINING
        self._join_seq += 1
        seq = self._join_seq
        try:
            result = await remote.call(JOIN_ROOM, self.username, self._requested_room)
        except CallAbandoned:
            log.debug(f"{JOIN_ROOM} abandoned, the connection closed")
            return
        except TransportFault as e:
            if self.sio is sio:
                log.error(f"Joining room failed: {e}", exc_info=True)
                await self.abort(str(e))
            return

        if self.sio is not sio or seq != self._join_seq:
            log.debug(f"Ignoring stale {JOIN_ROOM} result")
            return
        if isinstance(result, FailResult):
            await self.abort(result.message)
            return

        self.phase = SessionPhase.IN_ROOM
        self.room_name = self._requested_room
        self.last_error = ""
        log.info(f"Joined room '{self.room_name}' as '{self.username}'")
        for callback in self._enter_listeners:
            await callback()

    async def _on_disconnect(self, reason: str | None = None):
        if self.sio is None:
            return
        if reason in EVICTION_REASONS:
            log.info("Disconnected by the coordinator, closing the session")
            await self._teardown()
            return
        if reason in CLIENT_DISCONNECT_REASONS:
            return

        log.warning(f"Connection lost ({reason}), waiting for reconnection")
        self.phase = SessionPhase.CONNECTING
        if self.remote is not None:
            self.remote.abandon_pending()
        for callback in self._drop_listeners:
            callback()

    def _on_connect_error(self, data=None):
        log.warning(f"Connection error: {data}")

    def _on_session_id(self, token):
        if not isinstance(token, str) or not token:
            log.warning(f"Ignoring invalid session id {token!r}")
            return
        log.debug("Received resume token")
        self.resume_token = token
