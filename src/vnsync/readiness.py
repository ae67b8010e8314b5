import enum
import logging

from vnsync.exceptions import (
    CallAbandoned,
    NotInRoomError,
    ToggleInFlightError,
    TransportFault,
)
from vnsync.room import RoomSynchronizer
from vnsync.session import SessionManager
from vnsync.socket_events import TOGGLE_READY, FailResult, RoomState

log = logging.getLogger(__name__)


class ReadinessState(enum.Enum):
    IDLE = "idle"
    TOGGLING = "toggling"


class ReadinessController:
    """Toggles the local participant's readiness.

    The readiness value itself is never set locally, it is read back from
    the next room snapshot. With auto-ready enabled, every snapshot that
    reports the local user as not ready triggers one toggle, unless a toggle
    is still waiting for its acknowledgement.
    """

    def __init__(self, session: SessionManager, room: RoomSynchronizer):
        self.session = session
        self.room = room
        self.state = ReadinessState.IDLE
        self.auto_ready = False
        self._toggle_seq = 0

        room.add_listener(self._on_snapshot)
        session.add_enter_listener(self._on_enter_room)
        session.add_teardown_listener(self.reset)
        session.add_drop_listener(self.reset)

    @property
    def in_flight(self) -> bool:
        return self.state is ReadinessState.TOGGLING

    def reset(self) -> None:
        """Forget the toggle in flight, a late result of it is ignored."""
        self._toggle_seq += 1
        self.state = ReadinessState.IDLE

    async def toggle_ready(self) -> None:
        """Ask the coordinator to flip the local user's readiness.

        A rejected toggle closes the session.

        Raises
        ------
        NotInRoomError
            If there is no active room session.
        ToggleInFlightError
            If the previous toggle has not been acknowledged yet.
        """
        remote = self.session.remote
        if not self.session.in_room or remote is None:
            raise NotInRoomError("Readiness can only be toggled inside a room.")
        if self.in_flight:
            raise ToggleInFlightError("A readiness toggle is already in flight.")

        sio = self.session.sio
        self.state = ReadinessState.TOGGLING
        self._toggle_seq += 1
        seq = self._toggle_seq
        try:
            result = await remote.call(TOGGLE_READY)
        except CallAbandoned:
            log.debug(f"{TOGGLE_READY} abandoned, the connection closed")
            return
        except TransportFault as e:
            if self.session.sio is sio and seq == self._toggle_seq:
                log.error(f"Toggling readiness failed: {e}", exc_info=True)
                await self.session.abort(str(e))
            return

        if self.session.sio is not sio or seq != self._toggle_seq:
            log.debug(f"Ignoring stale {TOGGLE_READY} result")
            return
        if isinstance(result, FailResult):
            await self.session.abort(result.message)
            return
        self.state = ReadinessState.IDLE

    async def set_auto_ready(self, enabled: bool) -> None:
        """Switch the auto-ready policy.

        Enabling it while the local user is not ready toggles right away.
        """
        was_enabled = self.auto_ready
        self.auto_ready = enabled
        if enabled and not was_enabled:
            await self._maybe_auto_toggle()

    async def _maybe_auto_toggle(self) -> None:
        if not self.auto_ready or self.in_flight or not self.session.in_room:
            return
        user = self.room.local_user
        if user is None or user.is_ready:
            return
        log.debug(f"Auto-ready: '{user.username}' is not ready, toggling")
        await self.toggle_ready()

    async def _on_snapshot(self, state: RoomState) -> None:
        await self._maybe_auto_toggle()

    async def _on_enter_room(self) -> None:
        await self._maybe_auto_toggle()
