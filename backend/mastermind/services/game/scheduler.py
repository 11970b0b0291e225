import time
from typing import Any, Callable, Optional

from .broadcaster import Broadcaster
from .registry import RoomRegistry
from .session import PLAYING_PHASES, TURN_TIMEOUT_SEC, GameSession


class TimerHandle:
    """The single outstanding turn timer of a session.

    Cancelling flips a flag the worker checks under the session lock, so a
    cancelled timer can never advance a turn even if its sleep completes.
    """

    def __init__(self, room_code: str, turn_pointer: int, round_: int, deadline: float):
        self.room_code = room_code
        self.turn_pointer = turn_pointer
        self.round = round_
        self.deadline = deadline
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self):
        state = 'cancelled' if self.cancelled else 'live'
        return f"<TimerHandle room={self.room_code} turn={self.turn_pointer} round={self.round} {state}>"


class TurnTimer:
    """Auto-advances a turn when the current participant stalls.

    ``start_task`` and ``sleep`` default to ``socketio.start_background_task``
    and ``socketio.sleep`` in the app; tests pass in a manual scheduler.
    """

    def __init__(self, registry: RoomRegistry, broadcaster: Broadcaster,
                 start_task: Callable[..., Any], sleep: Callable[[float], Any],
                 timeout: float = TURN_TIMEOUT_SEC, clock: Callable[[], float] = time.time, logger=None):
        self._registry = registry
        self._broadcaster = broadcaster
        self._start_task = start_task
        self._sleep = sleep
        self._clock = clock
        self._logger = logger
        self.timeout = timeout

    def start(self, session: GameSession) -> Optional[TimerHandle]:
        """Cancel the session's current timer and schedule a fresh one.

        Returns None when the session is closed or not in a playing phase.
        """
        with session.lock:
            if session.timer is not None and self._logger:
                self._logger.debug(f"[timer-cancel] room={session.room_code} handle={session.timer!r}")
            session.cancel_timer()
            if session.closed or session.phase not in PLAYING_PHASES:
                return None

            deadline = self._clock() + self.timeout
            handle = TimerHandle(session.room_code, session.turn_pointer, session.round, deadline)
            session.timer = handle
            session.turn_deadline = deadline
            if self._logger:
                self._logger.info(
                    f"[timer-set] room={session.room_code} turn={session.turn_pointer} round={session.round} "
                    f"duration={self.timeout}s deadline={deadline}"
                )
            self._broadcaster.publish_turn_started(session)
            self._start_task(self._worker, handle)
        return handle

    def _worker(self, handle: TimerHandle) -> None:
        self._sleep(self.timeout)
        self.expire(handle)

    def expire(self, handle: TimerHandle) -> bool:
        """Treat the turn as passed with no action. Returns True if it advanced."""
        session = self._registry.get(handle.room_code)
        if session is None:
            if self._logger:
                self._logger.info(f"[timer-abort] room={handle.room_code} room gone")
            return False

        with session.lock:
            if handle.cancelled or session.timer is not handle or session.closed or session.finished:
                if self._logger:
                    self._logger.debug(f"[timer-abort] room={handle.room_code} stale handle={handle!r}")
                return False

            if self._logger:
                self._logger.info(
                    f"[timer-fire] room={session.room_code} turn={session.turn_pointer} round={session.round}"
                )
            session.timer = None
            session.advance_turn()
            if not session.finished:
                self.start(session)
            elif self._logger:
                self._logger.info(f"[game-over] room={session.room_code} round={session.round} winner={session.winner_id}")
            self._broadcaster.publish_state(session.room_code)
        return True
