import time
import logging

from flask import Flask, g, request, jsonify
from werkzeug.exceptions import HTTPException
import redis

from ecfresh.extensions import socketio, cors, session_ext, init_db
import ecfresh.extensions as ext


def create_app(config_class='ecfresh.config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_class)

    from ecfresh.services.backends import check_backend_config
    check_backend_config(app.config)

    _configure_session_store(app)
    cors.init_app(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})
    session_ext.init_app(app)
    socketio.init_app(app, async_mode=app.config.get("SOCKETIO_ASYNC_MODE"))

    init_db(app.config['DATABASE_URL'])
    _register_db_teardown(app)
    _register_request_timing(app, app.config.get("SLOW_REQUEST_MS", 250))

    @app.errorhandler(HTTPException)
    def _json_error(e):
        return jsonify({"ok": False, "error": e.description}), e.code

    from ecfresh.auth.routes import bp_auth
    from ecfresh.consumer.api import bp_consumer_api
    from ecfresh.consumer.pages import bp_consumer_pages
    from ecfresh.admin.api import bp_admin_api
    from ecfresh.admin.pages import bp_admin_pages
    for bp in (bp_auth, bp_consumer_api, bp_consumer_pages, bp_admin_api, bp_admin_pages):
        app.register_blueprint(bp)

    from .jinjafilters.filters import register_filters
    register_filters(app)

    # Socket.IO handlers bind on import
    from ecfresh.admin import events as _

    return app


def _configure_session_store(app):
    redis_url = app.config.get("REDIS_URL")
    if not redis_url:
        app.config["SESSION_TYPE"] = "filesystem"
        return
    # Flask-Session wants a client, not a URL
    app.config["SESSION_TYPE"] = "redis"
    app.config["SESSION_REDIS"] = redis.Redis.from_url(redis_url)


def _register_db_teardown(app):
    @app.teardown_request
    def _finish_db_session(exc):
        sess = ext.db_session
        if sess is None:
            return
        try:
            if exc is None:
                sess.commit()
            else:
                sess.rollback()
        finally:
            sess.remove()


def _register_request_timing(app, threshold_ms):
    perf = logging.getLogger("perf")
    if not perf.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        perf.addHandler(handler)
        perf.setLevel(logging.INFO)
        perf.propagate = False

    @app.before_request
    def _mark_start():
        g.request_started = time.perf_counter()

    @app.after_request
    def _warn_if_slow(resp):
        started = getattr(g, "request_started", None)
        if started is None:
            return resp
        elapsed = (time.perf_counter() - started) * 1000
        if elapsed > threshold_ms:
            perf.warning("SLOW %s %s %.0f ms status=%s",
                         request.method, request.path, elapsed, resp.status_code)
        return resp
