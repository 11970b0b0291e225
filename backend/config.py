import os


def _origins(raw):
    return [o.strip() for o in raw.split(',') if o.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    CORS_ORIGINS = _origins(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080,http://127.0.0.1:8080',
    ))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    HOST = os.environ.get('HOST', '127.0.0.1')
    PORT = int(os.environ.get('PORT', '3000'))
    # Game rules (rounds, players, turn length) are fixed in mastermind.services.game.session
