"""Game domain services: scoring, sessions, rooms and turn timers.

This package contains the room/session logic that the Socket.IO handlers
and HTTP routes call into, keeping transport concerns separated from core
game mechanics.
"""

from .scoring import ScoreResult, evaluate
from .session import GameSession, GuessRecord, Participant, Phase
from .registry import RoomRegistry
from .controller import SessionController

__all__ = [
    'ScoreResult',
    'evaluate',
    'GameSession',
    'GuessRecord',
    'Participant',
    'Phase',
    'RoomRegistry',
    'SessionController',
]
