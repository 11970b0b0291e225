import random
import string
from typing import Any, Callable, Dict, Optional, Tuple

from mastermind.errors import (
    AlreadySeated,
    ProtocolError,
    RequestRejected,
    RoomNotFound,
    SilentRejection,
)
from .broadcaster import Broadcaster
from .connections import ConnectionDirectory
from .registry import RoomRegistry
from .sanitizer import project
from .scheduler import TurnTimer
from .session import CODE_LENGTH, PLAYING_PHASES, GameSession, Participant


def generate_player_id(rng=random) -> str:
    return 'Player' + ''.join(rng.choices(string.ascii_lowercase + string.digits, k=9))


class SessionController:
    """Applies inbound actions from a connection to the room it targets.

    Every mutation of a session happens under ``session.lock`` so guesses,
    joins, disconnects and timer expiries on the same room never interleave.
    Rooms do not share locks.
    """

    def __init__(self, registry: RoomRegistry, broadcaster: Broadcaster, timer: TurnTimer,
                 connections: ConnectionDirectory, logger,
                 id_factory: Callable[[], str] = generate_player_id):
        self.registry = registry
        self.broadcaster = broadcaster
        self.timer = timer
        self.connections = connections
        self.logger = logger
        self._id_factory = id_factory
        self._handlers = {
            'requestId': self.request_id,
            'requestPlayerId': self.request_id,
            'createRoom': self.create_room,
            'joinRoom': self.join_room,
            'startGame': self.start_game,
            'guess': self.guess,
            'retryGame': self.retry_game,
        }

    # ---- entry points ----

    def dispatch(self, sid: str, data: Any) -> None:
        """Route a generic ``{action: ...}`` message."""
        action = data.get('action') if isinstance(data, dict) else None
        self.handle(sid, action, data)

    def handle(self, sid: str, action: Optional[str], data: Any) -> None:
        try:
            handler = self._handlers.get(action) if isinstance(action, str) else None
            if handler is None:
                raise ProtocolError(f"Unknown action {action!r}")
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise ProtocolError(f"Payload for {action} must be an object")
            handler(sid, data)
        except RequestRejected as exc:
            self.logger.info(f"[reject] sid={sid} action={action} reason={exc.message}")
            self.broadcaster.send(sid, 'error', {'error': exc.message})
        except SilentRejection as exc:
            self.logger.debug(f"[ignored] sid={sid} action={action} reason={exc.message}")
        except ProtocolError as exc:
            self.logger.warning(f"[protocol] sid={sid} action={action} error={exc.message}")
        except Exception:
            # Nothing raised while handling a message is fatal
            self.logger.exception(f"[handler-error] sid={sid} action={action}")

    # ---- actions ----

    def request_id(self, sid: str, data: Dict[str, Any]) -> str:
        player_id = self._id_factory()
        self.broadcaster.send(sid, 'player_id', {'playerId': player_id})
        return player_id

    def create_room(self, sid: str, data: Dict[str, Any]) -> GameSession:
        player_id = _require_str(data, 'playerId')
        if self.connections.seat_for(sid) is not None:
            raise AlreadySeated()
        admin = Participant(player_id, _display_name(data))
        session = self.registry.create(admin)
        with session.lock:
            self.connections.bind(sid, session.room_code, player_id)
            self.broadcaster.publish_state(session.room_code)
        return session

    def join_room(self, sid: str, data: Dict[str, Any]) -> GameSession:
        room_code = _room_code(data)
        player_id = _require_str(data, 'playerId')
        if self.connections.seat_for(sid) is not None:
            raise AlreadySeated()
        session = self.registry.require(room_code)
        with session.lock:
            if session.closed:
                raise RoomNotFound()
            participant = Participant(player_id, _display_name(data))
            session.add_participant(participant)
            self.connections.bind(sid, room_code, player_id)
            self.logger.info(f"[join] room={room_code} player={player_id} name={participant.display_name}")
            self.broadcaster.publish_notification(session, f"{participant.display_name} joined the game")
            self.broadcaster.publish_state(room_code)
        return session

    def start_game(self, sid: str, data: Dict[str, Any]) -> None:
        session, player_id = self._seated_session(sid, data)
        with session.lock:
            self._ensure_open(session)
            session.start(player_id)
            self.logger.info(f"[start] room={session.room_code} players={len(session.participants)}")
            self.timer.start(session)
            self.broadcaster.publish_state(session.room_code)

    def guess(self, sid: str, data: Dict[str, Any]) -> None:
        session, player_id = self._seated_session(sid, data)
        digits = data.get('guess')
        if not isinstance(digits, str) or len(digits) != CODE_LENGTH or not digits.isdigit():
            raise ProtocolError(f"Guess must be {CODE_LENGTH} digits")
        with session.lock:
            self._ensure_open(session)
            had_winner = session.winner_id is not None
            record = session.submit_guess(player_id, digits)
            score = record.score
            self.logger.info(
                f"[guess] room={session.room_code} player={player_id} guess={digits} "
                f"exact={score.exact_matches} value={score.value_matches} miss={score.misses}"
            )
            if not had_winner and session.winner_id is not None:
                self.logger.info(f"[final-lap] room={session.room_code} winner={player_id}")
            if session.finished:
                self.logger.info(f"[game-over] room={session.room_code} round={session.round} winner={session.winner_id}")
            else:
                self.timer.start(session)
            self.broadcaster.publish_state(session.room_code)

    def retry_game(self, sid: str, data: Dict[str, Any]) -> None:
        session, player_id = self._seated_session(sid, data)
        with session.lock:
            self._ensure_open(session)
            session.restart(player_id)
            self.logger.info(f"[restart] room={session.room_code}")
            self.logger.debug(f"[restart] room={session.room_code} secret={session.secret_code}")
            self.broadcaster.publish_state(session.room_code)

    def disconnect(self, sid: str) -> None:
        seat = self.connections.unbind(sid)
        if seat is None:
            return
        session = self.registry.get(seat.room_code)
        if session is None:
            return
        with session.lock:
            was_playing = session.phase in PLAYING_PHASES
            departed = session.remove_participant(seat.player_id)
            if departed is None:
                return
            self.logger.info(f"[leave] room={seat.room_code} player={seat.player_id}")
            if not session.participants:
                self.registry.remove(seat.room_code)
                return
            self.broadcaster.publish_notification(session, f"{departed.display_name} left the game")
            if session.phase in PLAYING_PHASES:
                self.timer.start(session)
            elif session.finished and was_playing:
                self.logger.info(f"[game-over] room={session.room_code} round={session.round} winner={session.winner_id}")
            self.broadcaster.publish_state(seat.room_code)

    def view(self, room_code: str) -> Optional[Dict[str, Any]]:
        session = self.registry.get(room_code)
        if session is None:
            return None
        with session.lock:
            return project(session)

    # ---- helpers ----

    def _seated_session(self, sid: str, data: Dict[str, Any]) -> Tuple[GameSession, str]:
        seat = self.connections.seat_for(sid)
        if seat is None:
            raise ProtocolError('Connection is not in a room')
        room_code = _room_code(data) if data.get('roomCode') is not None else seat.room_code
        player_id = data.get('playerId') or seat.player_id
        if (room_code, player_id) != (seat.room_code, seat.player_id):
            raise ProtocolError(f"Connection is seated as {seat.player_id} in room {seat.room_code}")
        session = self.registry.get(room_code)
        if session is None:
            raise RoomNotFound()
        return session, player_id

    @staticmethod
    def _ensure_open(session: GameSession) -> None:
        if session.closed:
            raise RoomNotFound()


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ProtocolError(f"{key} is required")
    return value


def _room_code(data: Dict[str, Any]) -> str:
    value = data.get('roomCode')
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise ProtocolError('roomCode is required')
    return value.strip()


def _display_name(data: Dict[str, Any]) -> str:
    name = data.get('username')
    if isinstance(name, str) and name.strip():
        return name.strip()
    return 'Anonymous'
