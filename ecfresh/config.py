import os
import tempfile

class Config:
    # --- Your env vars ---
    SECRET_KEY = os.environ.get("SECRET_KEY")
    DATABASE_URL = os.environ.get("DATABASE_URL")
    REDIS_URL = os.environ.get("REDIS_URL")
    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    CLERK_SECRET_KEY = os.environ.get("CLERK_SECRET_KEY")
    CLERK_API_URL = os.environ.get("CLERK_API_URL", "https://api.clerk.com/v1")
    FIREBASE_SERVICE_ACCOUNT = os.environ.get("FIREBASE_SERVICE_ACCOUNT")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD")
    SERVICE_URL = os.environ.get("SERVICE_URL", "http://localhost:5000")

    # --- Backends: "supabase" | "firebase", "sql" | "clerk", "sql" | "supabase" ---
    AUTH_PROVIDER = os.environ.get("AUTH_PROVIDER", "supabase")
    ACCOUNT_BACKEND = os.environ.get("ACCOUNT_BACKEND", "sql")
    DATA_BACKEND = os.environ.get("DATA_BACKEND", "sql")

    # --- Delivery ---
    STORE_TIMEZONE = os.environ.get("STORE_TIMEZONE", "Asia/Kolkata")
    DELIVERY_HORIZON_DAYS = int(os.environ.get("DELIVERY_HORIZON_DAYS", "3"))
    # comma separated "pin:region" pairs, e.g. "600001:Chennai Central,600002:Anna Salai"
    SERVICE_PINCODES = os.environ.get("SERVICE_PINCODES", "")

    # --- Logging: requests slower than this are logged by "perf" ---
    SLOW_REQUEST_MS = int(os.environ.get("SLOW_REQUEST_MS", "250"))

    # --- Socket.IO ---
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "eventlet")

    # --- Sessions  ---
    SESSION_TYPE = "redis"
    SESSION_PERMANENT = True
    SESSION_USE_SIGNER = False
    SESSION_KEY_PREFIX = "sess:"

    # --- Cookie hardening ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = os.environ.get("SESSION_COOKIE_SECURE") == "True"
    SESSION_COOKIE_SAMESITE = "Lax"

    # --- CORS ---
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
    CORS_SUPPORTS_CREDENTIALS = True


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    DATABASE_URL = "sqlite://"
    REDIS_URL = None
    SESSION_FILE_DIR = os.path.join(tempfile.gettempdir(), "ecfresh-test-sessions")
    SOCKETIO_ASYNC_MODE = "threading"
    AUTH_PROVIDER = "supabase"
    ACCOUNT_BACKEND = "sql"
    DATA_BACKEND = "sql"
    ADMIN_PASSWORD = "letmein"
    STORE_TIMEZONE = "Asia/Kolkata"
    DELIVERY_HORIZON_DAYS = 3
    SERVICE_PINCODES = "600001:Chennai Central,600017:T. Nagar"
