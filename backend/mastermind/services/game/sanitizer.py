from typing import Any, Dict

from .session import MAX_ROUNDS, TURN_TIMEOUT_SEC, GameSession, Phase


def project(session: GameSession) -> Dict[str, Any]:
    """Build the client-safe view of a session.

    Never includes the timer handle or connections. The secret code is only
    revealed once the game is finished. Does not mutate the session.
    """
    current = session.current_participant
    view = {
        'phase': session.phase.value,
        'started': session.started,
        'gameOver': session.finished,
        'finalRound': session.phase == Phase.FINAL_LAP or (session.finished and session.winner_id is not None),
        'round': session.round,
        'maxRounds': MAX_ROUNDS,
        'turnPointer': session.turn_pointer,
        'currentTurnPlayerId': current.id if current else None,
        'winnerId': session.winner_id,
        'adminId': session.admin_id,
        'turnDeadline': session.turn_deadline,
        'turnTimeoutSec': TURN_TIMEOUT_SEC,
        'players': [
            {
                'id': p.id,
                'displayName': p.display_name,
                'guessHistory': [g.to_dict() for g in p.guesses],
            }
            for p in session.participants
        ],
    }
    if session.finished:
        view['secretCode'] = session.secret_code
    return view
