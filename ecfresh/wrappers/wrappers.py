from functools import wraps
from flask import session, abort
from flask_socketio import disconnect


def login_required(func):
    @wraps(func)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            abort(401, "You must be logged in to do that.")
        return func(*args, **kwargs)
    return decorated_function

def role_required(role):
    # Only allow users with a specific role
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if session.get('role', 'customer') != role:
                abort(403, "Unauthorized access.")
            return func(*args, **kwargs)
        return wrapper
    return decorator

admin_required = role_required('admin')

def socket_role_required(role: str):
    """
    Guard for Socket.IO events: requires matching role in session.
    Disconnects the socket otherwise.
    Usage:
        @socketio.on("join_admin", namespace="/admin")
        @socket_role_required("admin")
        def handle_join_admin(data): ...
    """
    def decorator(func):
        @wraps(func)
        def wrapped(*args, **kwargs):
            if session.get('role', 'customer') != role:
                disconnect()
                return
            return func(*args, **kwargs)
        return wrapped
    return decorator
