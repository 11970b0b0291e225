from flask import current_app, request
from flask_socketio import emit
from mastermind import socketio


def _controller():
    return current_app.extensions['mastermind']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(*args):
    emit('connected', {'message': 'Connected'})


def handle_disconnect(*args):
    # Connection close is the only way a participant leaves a room
    _controller().disconnect(_get_sid())


def handle_message(data=None):
    _controller().dispatch(_get_sid(), data)


def _action_handler(action):
    def handler(data=None):
        _controller().handle(_get_sid(), action, data)
    handler.__name__ = f"handle_{action}"
    return handler


handle_request_id = _action_handler('requestId')
handle_create_room = _action_handler('createRoom')
handle_join_room = _action_handler('joinRoom')
handle_start_game = _action_handler('startGame')
handle_guess = _action_handler('guess')
handle_retry_game = _action_handler('retryGame')


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('message', handle_message, namespace=namespace)
    socketio.on_event('request_id', handle_request_id, namespace=namespace)
    socketio.on_event('create_room', handle_create_room, namespace=namespace)
    socketio.on_event('join_room', handle_join_room, namespace=namespace)
    socketio.on_event('start_game', handle_start_game, namespace=namespace)
    socketio.on_event('guess', handle_guess, namespace=namespace)
    socketio.on_event('retry_game', handle_retry_game, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
