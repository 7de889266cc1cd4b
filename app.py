import eventlet
eventlet.monkey_patch()

from dotenv import load_dotenv

load_dotenv()

from ecfresh import create_app
from ecfresh.extensions import socketio


app = create_app()

if __name__ == "__main__":
    socketio.run(app, host="0.0.0.0", port=5000, debug=True)
