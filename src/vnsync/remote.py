import asyncio
import dataclasses
import logging
import typing as t

import socketio

from vnsync.exceptions import CallAbandoned, TransportFault
from vnsync.socket_events import FailResult, OkResult, parse_result

log = logging.getLogger(__name__)


@dataclasses.dataclass
class RemoteCaller:
    """Request/acknowledgement calls over a Socket.IO channel.

    Every call waits for exactly one acknowledgement. There is no timeout
    here, the channel's reconnection policy is the only timeout mechanism.
    Concurrent calls are allowed, each one waits for its own acknowledgement.
    When the connection closes the socket library forgets all pending
    acknowledgements, so the owner has to :meth:`abandon_pending` calls then.
    """

    sio: socketio.AsyncClient
    _pending: set = dataclasses.field(default_factory=set, init=False, repr=False)
    _abandoned: set = dataclasses.field(default_factory=set, init=False, repr=False)

    async def call(self, operation: str, *args: t.Any) -> OkResult | FailResult:
        """Send ``operation`` with ``args`` and return the parsed result.

        Raises
        ------
        CallAbandoned
            If the call was abandoned before its acknowledgement arrived.
        TransportFault
            If the socket library reports an error or the acknowledgement
            is not a result envelope.
        """
        log.debug(f"Calling '{operation}' with {len(args)} argument(s)")
        # a tuple is sent as separate arguments, an empty one as none
        request = asyncio.ensure_future(self.sio.call(operation, args, timeout=None))
        self._pending.add(request)
        try:
            payload = await request
        except asyncio.CancelledError:
            if request not in self._abandoned:
                raise
            raise CallAbandoned(operation, "connection closed") from None
        except socketio.exceptions.SocketIOError as e:
            raise TransportFault(operation, str(e) or type(e).__name__) from e
        finally:
            self._pending.discard(request)
            self._abandoned.discard(request)

        result = parse_result(operation, payload)
        if isinstance(result, FailResult):
            log.info(f"'{operation}' was rejected: {result.message}")
        return result

    def abandon_pending(self) -> None:
        """Stop waiting for every unacknowledged call."""
        if self._pending:
            log.debug(f"Abandoning {len(self._pending)} unacknowledged call(s)")
        for request in self._pending:
            self._abandoned.add(request)
            request.cancel()
