"""VNSync room client: readiness sync and shared clipboard mirroring."""
import importlib.metadata

from vnsync.client import VNSyncClient
from vnsync.session import SessionPhase
from vnsync.socket_events import RoomState, RoomUser

__all__ = ["VNSyncClient", "SessionPhase", "RoomState", "RoomUser"]

__version__ = importlib.metadata.version("vnsync")
