import logging
import typing as t

from pydantic import ValidationError

from vnsync.socket_events import RoomState, RoomUser

log = logging.getLogger(__name__)

SnapshotListener = t.Callable[[RoomState], t.Awaitable[None]]


class RoomSynchronizer:
    """Holds the latest room snapshot and the local user's record in it.

    Snapshots are never merged, each push replaces the previous one.
    The local user's readiness is only ever learned from a snapshot.
    """

    def __init__(self, username: str = ""):
        self.username = username
        self.state = RoomState.empty()
        self.local_user: RoomUser | None = None
        self._listeners: list[SnapshotListener] = []

    def add_listener(self, callback: SnapshotListener) -> None:
        """Run ``callback`` after every reconciled snapshot."""
        self._listeners.append(callback)

    def apply(self, state: RoomState) -> RoomUser | None:
        """Store ``state`` and recompute the local user's record."""
        self.state = state
        self.local_user = state.find_member(self.username)
        return self.local_user

    def reset(self) -> None:
        self.state = RoomState.empty()
        self.local_user = None

    async def on_room_state_change(self, data: t.Any) -> None:
        """Handle a roomStateChange push."""
        try:
            state = RoomState.model_validate(data)
        except ValidationError as e:
            log.error(f"Dropping invalid room state: {e}")
            return

        self.apply(state)
        log.debug(
            f"Room state changed: {len(state.members_state)} member(s), "
            f"local user {'present' if self.local_user else 'absent'}"
        )
        for callback in self._listeners:
            await callback(state)
