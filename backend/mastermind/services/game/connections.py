import threading
from typing import Dict, NamedTuple, Optional


class Seat(NamedTuple):
    room_code: str
    player_id: str


class ConnectionDirectory:
    """Maps seats (room code, participant id) to their live Socket.IO sid and back.

    Connections never enter session state; a participant without a bound
    sid is treated as closed and skipped when broadcasting. Player ids are
    chosen by clients, so lookups are always scoped to a room.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sid_by_seat: Dict[Seat, str] = {}
        self._seat_by_sid: Dict[str, Seat] = {}

    def bind(self, sid: str, room_code: str, player_id: str) -> Seat:
        seat = Seat(room_code, player_id)
        with self._lock:
            self._seat_by_sid[sid] = seat
            self._sid_by_seat[seat] = sid
        return seat

    def unbind(self, sid: str) -> Optional[Seat]:
        with self._lock:
            seat = self._seat_by_sid.pop(sid, None)
            if seat and self._sid_by_seat.get(seat) == sid:
                del self._sid_by_seat[seat]
        return seat

    def seat_for(self, sid: str) -> Optional[Seat]:
        with self._lock:
            return self._seat_by_sid.get(sid)

    def sid_for(self, room_code: str, player_id: str) -> Optional[str]:
        with self._lock:
            return self._sid_by_seat.get(Seat(room_code, player_id))
