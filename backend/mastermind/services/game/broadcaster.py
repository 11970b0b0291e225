from typing import Any, Callable, Dict, Optional

from .connections import ConnectionDirectory
from .registry import RoomRegistry
from .sanitizer import project
from .session import GameSession


class Broadcaster:
    """Best-effort fan-out of room events over Socket.IO.

    ``emit`` has the signature of ``SocketIO.emit``. A failed delivery to one
    participant is logged and never stops delivery to the others.
    """

    def __init__(self, emit: Callable[..., Any], registry: RoomRegistry, connections: ConnectionDirectory,
                 namespace: str = '/ws', logger=None):
        self._emit = emit
        self._registry = registry
        self._connections = connections
        self._namespace = namespace
        self._logger = logger

    def send(self, sid: str, event: str, payload: Dict[str, Any]) -> bool:
        try:
            self._emit(event, payload, to=sid, namespace=self._namespace)
            return True
        except Exception as exc:
            if self._logger:
                self._logger.warning(f"[send-failed] sid={sid} event={event} error={exc}")
            return False

    def publish_state(self, room_code: str) -> Optional[Dict[str, Any]]:
        session = self._registry.get(room_code)
        if session is None:
            return None
        payload = {'roomCode': room_code, 'clientView': project(session)}
        self._deliver(session, 'state_update', payload)
        return payload

    def publish_notification(self, session: GameSession, text: str) -> None:
        self._deliver(session, 'notification', {'notification': text})

    def publish_turn_started(self, session: GameSession) -> None:
        self._deliver(session, 'turn_started', {
            'turnStarted': True,
            'currentTurn': session.turn_pointer,
            'turnDeadline': session.turn_deadline,
        })

    def _deliver(self, session: GameSession, event: str, payload: Dict[str, Any]) -> int:
        delivered = 0
        for participant in list(session.participants):
            sid = self._connections.sid_for(session.room_code, participant.id)
            if sid is None:
                if self._logger:
                    self._logger.debug(f"[broadcast-skip] room={session.room_code} player={participant.id} event={event}")
                continue
            if self.send(sid, event, payload):
                delivered += 1
        return delivered
