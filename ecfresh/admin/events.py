# admin/events.py
from flask_socketio import join_room

from ecfresh.extensions import socketio
from ecfresh.wrappers.wrappers import socket_role_required

NAMESPACE = "/admin"
ROOM = "admin_updates"

@socketio.on("connect", namespace=NAMESPACE)
@socket_role_required("admin")
def admin_connect():
    pass

@socketio.on("join_admin", namespace=NAMESPACE)
@socket_role_required("admin")
def handle_join_admin(payload=None, *args, **kwargs):
    join_room(ROOM)
    return {"ok": True, "room": ROOM}
