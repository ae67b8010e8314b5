"""Pydantic models for the coordinator's Socket.IO events.

Event names follow the coordinator's camelCase naming:
- joinRoom / toggleReady are requests answered with a result envelope
- roomStateChange / sessionId are pushed without acknowledgement
"""

import typing as t

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
)

from vnsync.exceptions import TransportFault

JOIN_ROOM = "joinRoom"
TOGGLE_READY = "toggleReady"
ROOM_STATE_CHANGE = "roomStateChange"
SESSION_ID = "sessionId"

# =============================================================================
# Result envelope (acknowledgement of every request)
# =============================================================================


class OkResult(BaseModel):
    """Successful acknowledgement."""

    status: t.Literal["ok"] = "ok"
    value: t.Any = None


class FailResult(BaseModel):
    """Rejected request. ``message`` is shown to the user verbatim."""

    status: t.Literal["fail"] = "fail"
    message: str = Field(validation_alias=AliasChoices("failMessage", "message"))


Result = t.Annotated[OkResult | FailResult, Field(discriminator="status")]

_result_adapter: TypeAdapter[OkResult | FailResult] = TypeAdapter(Result)


def parse_result(operation: str, payload: t.Any) -> OkResult | FailResult:
    """Validate the acknowledgement of ``operation``.

    Raises
    ------
    TransportFault
        If the payload is missing or is not a valid result envelope.
    """
    if payload is None:
        raise TransportFault(operation, "acknowledgement carried no payload")
    try:
        return _result_adapter.validate_python(payload)
    except ValidationError as e:
        raise TransportFault(
            operation, f"malformed acknowledgement {payload!r}"
        ) from e


# =============================================================================
# Broadcast models (coordinator -> clients)
# =============================================================================


class RoomUser(BaseModel):
    """A participant of a room as reported by the coordinator."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    username: str
    is_ready: bool = Field(alias="isReady")


class RoomState(BaseModel):
    """Authoritative snapshot of a room, replaced whole on every push."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    members_state: list[RoomUser] = Field(default_factory=list, alias="membersState")
    # newest first
    clipboard: list[str] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "RoomState":
        return cls(members_state=[], clipboard=[])

    @property
    def current_clipboard(self) -> str:
        """The shared clipboard value, or an empty string if there is none."""
        return self.clipboard[0] if self.clipboard else ""

    def find_member(self, username: str) -> RoomUser | None:
        for member in self.members_state:
            if member.username == username:
                return member
        return None
