from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/health')
def health():
    controller = current_app.extensions['mastermind']
    return jsonify({'status': 'ok', 'rooms': len(controller.registry)})


@main.route('/rooms/<string:room_code>')
def room_state(room_code):
    """
    Returns the same client-safe view that is broadcast to the room.
    """
    controller = current_app.extensions['mastermind']
    view = controller.view(room_code)
    if view is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify({'roomCode': room_code, 'clientView': view}), 200
