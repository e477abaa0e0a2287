from flask_socketio import join_room, leave_room, emit
from gammon import socketio


def _room_for(data):
    session_id = (data or {}).get('session_id')
    if session_id in (None, ''):
        return None
    return f"match:{session_id}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_match(data):
    room = _room_for(data)
    if not room:
        emit('error', {'message': 'session_id is required'})
        return
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_match(data):
    room = _room_for(data)
    if not room:
        emit('error', {'message': 'session_id is required'})
        return
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('join_match', handle_join_match, namespace='/ws')
    socketio.on_event('leave_match', handle_leave_match, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('join_match', handle_join_match, namespace='/')
        socketio.on_event('leave_match', handle_leave_match, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
