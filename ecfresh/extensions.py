from flask_cors import CORS
from flask_session import Session
from flask_socketio import SocketIO
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

socketio = SocketIO()
session_ext = Session()
cors = CORS()

# set by init_db(); import the module, not the names
engine = None
db_session = None

# Supabase Postgres sits behind pgbouncer, which drops idle connections
POSTGRES_ENGINE_OPTIONS = {
    "pool_size": 10,
    "max_overflow": 5,
    "pool_pre_ping": True,
    "pool_recycle": 300,
    "pool_timeout": 30,
    "connect_args": {
        "sslmode": "require",
        "keepalives": 1,
        "keepalives_idle": 30,
        "keepalives_interval": 10,
        "keepalives_count": 5,
        "options": "-c statement_timeout=30000 -c idle_in_transaction_session_timeout=15000",
    },
}


def _engine_for(uri):
    if uri.startswith("sqlite"):
        # one shared connection keeps an in-memory database alive
        return create_engine(uri, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(uri, **POSTGRES_ENGINE_OPTIONS)


def init_db(uri):
    global engine, db_session
    if not uri:
        raise RuntimeError("DATABASE_URL is not set")
    engine = _engine_for(uri)
    db_session = scoped_session(sessionmaker(bind=engine, autoflush=False))
    return engine, db_session
