"""Error taxonomy for inbound actions.

Domain objects raise these; the session controller decides what the
requester gets to see.
"""


class GameError(Exception):
    """Base class for every game-level rejection."""

    message = 'Request rejected'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


class RequestRejected(GameError):
    """Rejection reported back to the requester as ``{error: ...}``."""


class RoomNotFound(RequestRejected):
    message = 'Room not found'


class RoomFull(RequestRejected):
    message = 'Room is full'


class GameInProgress(RequestRejected):
    message = 'Game already in progress'


class AlreadySeated(RequestRejected):
    message = 'Already in a room'


class RoomCodesExhausted(RequestRejected):
    message = 'No free room codes, try again later'


class SilentRejection(GameError):
    """Rejection that is logged and dropped; the sender only sees the state view unchanged."""


class NotYourTurn(SilentRejection):
    message = 'Not your turn'


class WrongPhase(SilentRejection):
    message = 'Action not allowed in the current phase'


class NotAdmin(SilentRejection):
    message = 'Only the room admin can do that'


class ProtocolError(GameError):
    """Malformed or unrecognized inbound message."""

    message = 'Malformed message'
