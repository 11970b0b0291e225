"""State machine for a single room.

A ``GameSession`` moves through ``lobby -> active -> final_lap -> finished``
and back to ``lobby`` on restart. Every mutation is expected to happen while
the caller holds ``session.lock``; the controller and the turn timer are the
only writers.
"""

import random
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from mastermind.errors import AlreadySeated, GameInProgress, NotAdmin, NotYourTurn, RoomFull, WrongPhase
from .scoring import ScoreResult, evaluate


MAX_ROUNDS = 10
TURN_TIMEOUT_SEC = 20
MAX_PLAYERS = 4
CODE_LENGTH = 4


class Phase(str, Enum):
    LOBBY = 'lobby'
    ACTIVE = 'active'
    FINAL_LAP = 'final_lap'
    FINISHED = 'finished'


PLAYING_PHASES = (Phase.ACTIVE, Phase.FINAL_LAP)


def generate_secret(rng=random) -> str:
    """Sample CODE_LENGTH distinct digits, uniformly."""
    return ''.join(str(d) for d in rng.sample(range(10), CODE_LENGTH))


@dataclass(frozen=True)
class GuessRecord:
    digits: str
    score: ScoreResult

    def to_dict(self) -> Dict[str, Any]:
        return {'submittedDigits': self.digits, 'scoring': self.score.to_dict()}


@dataclass
class Participant:
    # The transport connection is deliberately not stored here; see ConnectionDirectory.
    id: str
    display_name: str
    guesses: List[GuessRecord] = field(default_factory=list)


class GameSession:

    def __init__(self, room_code: str, admin: Participant, rng=None):
        self.room_code = room_code
        self.rng = rng or random
        self.secret_code = generate_secret(self.rng)
        self.participants: List[Participant] = [admin]
        self.admin_id: Optional[str] = admin.id
        self.turn_pointer = 0
        self.round = 1
        self.phase = Phase.LOBBY
        self.winner_id: Optional[str] = None
        self.turn_deadline: Optional[float] = None
        self.timer = None
        self.closed = False
        self.lock = threading.RLock()

    def __repr__(self):
        return f"<GameSession {self.room_code} phase={self.phase.value} round={self.round} players={len(self.participants)}>"

    @property
    def started(self) -> bool:
        return self.phase != Phase.LOBBY

    @property
    def finished(self) -> bool:
        return self.phase == Phase.FINISHED

    @property
    def current_participant(self) -> Optional[Participant]:
        if not self.participants:
            return None
        return self.participants[self.turn_pointer]

    def index_of(self, player_id: str) -> Optional[int]:
        for i, p in enumerate(self.participants):
            if p.id == player_id:
                return i
        return None

    def get_participant(self, player_id: str) -> Optional[Participant]:
        idx = self.index_of(player_id)
        return self.participants[idx] if idx is not None else None

    # ---- membership ----

    def add_participant(self, participant: Participant) -> None:
        if len(self.participants) >= MAX_PLAYERS:
            raise RoomFull()
        if self.phase != Phase.LOBBY:
            raise GameInProgress()
        if self.index_of(participant.id) is not None:
            raise AlreadySeated('Player already in this room')
        self.participants.append(participant)

    def remove_participant(self, player_id: str) -> Optional[Participant]:
        """Drop a participant, keeping the turn pointer and admin valid.

        The pointer is only clamped, never shifted: if the departure leaves it
        past the end of the list it goes back to 0. In the final lap that
        clamp means every remaining seat has had its last turn, so the game
        ends.
        """
        idx = self.index_of(player_id)
        if idx is None:
            return None
        departed = self.participants.pop(idx)
        if not self.participants:
            return departed
        if idx <= self.turn_pointer and self.turn_pointer >= len(self.participants):
            # A clamp is not a round wrap; the round counter stays put.
            self.turn_pointer = 0
            if self.phase == Phase.FINAL_LAP:
                self.finish()
        if departed.id == self.admin_id:
            self.admin_id = self.participants[0].id
        return departed

    # ---- transitions ----

    def start(self, player_id: str) -> None:
        if player_id != self.admin_id:
            raise NotAdmin()
        if self.phase != Phase.LOBBY:
            raise WrongPhase()
        if not self.participants:
            raise WrongPhase('No participants to start with')
        self.phase = Phase.ACTIVE
        self.turn_pointer = 0
        self.round = 1

    def submit_guess(self, player_id: str, digits: str) -> GuessRecord:
        if self.phase not in PLAYING_PHASES:
            raise WrongPhase()
        idx = self.index_of(player_id)
        if idx is None or idx != self.turn_pointer:
            raise NotYourTurn()

        record = GuessRecord(digits, evaluate(digits, self.secret_code))
        self.participants[idx].guesses.append(record)

        if record.score.solved and self.winner_id is None:
            self.winner_id = player_id
            self.phase = Phase.FINAL_LAP

        self.advance_turn()
        return record

    def advance_turn(self) -> None:
        """Move to the next participant; shared by guesses and timer expiry.

        Wrapping to index 0 closes a round. In the final lap a wrap ends the
        game; otherwise it bumps the round and ends the game past MAX_ROUNDS.
        """
        if self.phase not in PLAYING_PHASES or not self.participants:
            return
        self.turn_pointer = (self.turn_pointer + 1) % len(self.participants)
        if self.turn_pointer != 0:
            return
        if self.phase == Phase.FINAL_LAP:
            self.finish()
            return
        self.round += 1
        if self.round > MAX_ROUNDS:
            self.finish()

    def finish(self) -> None:
        self.phase = Phase.FINISHED
        self.cancel_timer()

    def restart(self, player_id: str) -> None:
        if player_id != self.admin_id:
            raise NotAdmin()
        self.cancel_timer()
        self.secret_code = generate_secret(self.rng)
        self.turn_pointer = 0
        self.round = 1
        self.winner_id = None
        self.phase = Phase.LOBBY
        for p in self.participants:
            p.guesses = []

    # ---- timer ownership ----

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
        self.timer = None
        self.turn_deadline = None

    def close(self) -> None:
        """Mark the session dead; no timer may be scheduled for it afterwards."""
        self.cancel_timer()
        self.closed = True
