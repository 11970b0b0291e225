import random
import threading
from typing import Callable, Dict, List, Optional

from mastermind.errors import RoomCodesExhausted, RoomNotFound
from .session import GameSession, Participant


def generate_room_code(rng=random) -> str:
    """Short numeric code players can read out to each other."""
    return str(rng.randint(1000, 9999))


class RoomRegistry:
    """Owns the room code -> GameSession mapping for one server process.

    Instances are independent so tests can build one per case.
    """

    def __init__(self, code_factory: Callable[[], str] = generate_room_code, rng=None,
                 max_attempts: int = 1000, logger=None):
        self._rooms: Dict[str, GameSession] = {}
        self._lock = threading.Lock()
        self._code_factory = code_factory
        self._rng = rng
        self._max_attempts = max_attempts
        self._logger = logger

    def __len__(self):
        with self._lock:
            return len(self._rooms)

    def __contains__(self, room_code):
        with self._lock:
            return room_code in self._rooms

    def create(self, admin: Participant) -> GameSession:
        with self._lock:
            for _ in range(self._max_attempts):
                code = self._code_factory()
                if code not in self._rooms:
                    break
            else:
                raise RoomCodesExhausted()
            session = GameSession(code, admin, rng=self._rng)
            self._rooms[code] = session
        if self._logger:
            self._logger.info(f"[room-create] room={code} admin={admin.id} name={admin.display_name}")
            self._logger.debug(f"[room-create] room={code} secret={session.secret_code}")
        return session

    def get(self, room_code: str) -> Optional[GameSession]:
        with self._lock:
            return self._rooms.get(room_code)

    def require(self, room_code: str) -> GameSession:
        session = self.get(room_code)
        if session is None:
            raise RoomNotFound()
        return session

    def remove(self, room_code: str) -> Optional[GameSession]:
        """Delete a room, cancelling its timer first.

        Lock order is session -> registry, matching the controller, so a timer
        can never be scheduled on a session that is already gone.
        """
        session = self.get(room_code)
        if session is None:
            return None
        with session.lock:
            session.close()
            with self._lock:
                if self._rooms.get(room_code) is session:
                    del self._rooms[room_code]
        if self._logger:
            self._logger.info(f"[room-delete] room={room_code}")
        return session

    def codes(self) -> List[str]:
        with self._lock:
            return sorted(self._rooms)

    def clear(self) -> None:
        for code in self.codes():
            self.remove(code)
