"""VNSync exception classes."""


class VNSyncException(Exception):
    """Base exception for all VNSync errors."""
    pass


class TransportFault(VNSyncException):
    """Raised when a remote call gets no usable acknowledgement.

    Covers errors reported by the socket library and acknowledgements that
    are not a valid result envelope. Never used for domain failures.
    """

    def __init__(self, operation: str, reason: str):
        super().__init__(f"{operation}: {reason}")
        self.operation = operation
        self.reason = reason


class ContractViolation(VNSyncException, RuntimeError):
    """Raised when the client is driven in a way its state does not allow."""
    pass


class NotInRoomError(ContractViolation):
    """Raised when a room operation is requested without an active room session."""
    pass


class ToggleInFlightError(ContractViolation):
    """Raised when readiness is toggled while a previous toggle is unanswered."""
    pass


class SessionBusyError(ContractViolation):
    """Raised when joining while a session is already connecting or in a room."""
    pass


class InvalidJoinRequest(VNSyncException, ValueError):
    """Raised when the username or room name is empty after trimming."""
    pass


class CallAbandoned(TransportFault):
    """Raised when a pending call is given up because its connection closed.

    The acknowledgement can no longer arrive, the caller should drop the
    request without treating it as a failure of the session.
    """
    pass
