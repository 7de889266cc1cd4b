"""
Picks the concrete backend for each capability from app config and keeps one
instance per app in `app.extensions`.

    AUTH_PROVIDER    supabase | firebase
    ACCOUNT_BACKEND  sql | clerk
    DATA_BACKEND     sql | supabase
"""
import json
from zoneinfo import ZoneInfo

import firebase_admin
from firebase_admin import credentials
from flask import current_app, session
from supabase import create_client

import ecfresh.extensions as ext
from ecfresh.auth.providers import SupabaseIdentityProvider, FirebaseIdentityProvider
from ecfresh.services.accounts import SqlAccountDirectory, ClerkAccountDirectory
from ecfresh.services.cart import CartService, WishlistService
from ecfresh.services.checkout import CheckoutService
from ecfresh.services.store import SqlStore, SupabaseStore


def _cached(key, factory):
    registry = current_app.extensions.setdefault("ecfresh", {})
    if key not in registry:
        registry[key] = factory()
    return registry[key]


def _supabase_client(service_role=True):
    url = current_app.config.get("SUPABASE_URL")
    key = current_app.config.get("SUPABASE_SERVICE_ROLE_KEY" if service_role else "SUPABASE_ANON_KEY")
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and Supabase keys must be set for the Supabase backends")
    return create_client(url, key)


def init_firebase(app):
    if firebase_admin._apps:
        return firebase_admin.get_app()

    sa_json = app.config.get("FIREBASE_SERVICE_ACCOUNT")
    if not sa_json:
        raise RuntimeError("FIREBASE_SERVICE_ACCOUNT not set in config (required when AUTH_PROVIDER=firebase)")

    info = json.loads(sa_json)
    opts = {"projectId": info["project_id"]} if info.get("project_id") else None
    return firebase_admin.initialize_app(credentials.Certificate(info), opts)


def store_timezone():
    return ZoneInfo(current_app.config.get("STORE_TIMEZONE") or "Asia/Kolkata")


def check_backend_config(config):
    """Fail at startup on backend combinations that cannot work together."""
    if config.get("ACCOUNT_BACKEND", "sql") == "clerk" and config.get("DATA_BACKEND", "sql") == "sql":
        # orders.user_id references users.id; Clerk ids are strings like "user_2abc"
        raise RuntimeError(
            "ACCOUNT_BACKEND=clerk needs DATA_BACKEND=supabase: the SQL order table "
            "references SQL user ids"
        )


def get_store():
    def build():
        backend = current_app.config.get("DATA_BACKEND", "sql")
        if backend == "supabase":
            return SupabaseStore(_supabase_client())
        if backend == "sql":
            return SqlStore(ext.db_session)
        raise RuntimeError(f"Unknown DATA_BACKEND '{backend}'")
    return _cached("store", build)


def get_accounts():
    def build():
        backend = current_app.config.get("ACCOUNT_BACKEND", "sql")
        if backend == "clerk":
            return ClerkAccountDirectory(
                current_app.config.get("CLERK_SECRET_KEY"),
                current_app.config.get("CLERK_API_URL"),
            )
        if backend == "sql":
            return SqlAccountDirectory(ext.db_session)
        raise RuntimeError(f"Unknown ACCOUNT_BACKEND '{backend}'")
    return _cached("accounts", build)


def get_identity_provider():
    def build():
        provider = current_app.config.get("AUTH_PROVIDER", "supabase")
        if provider == "firebase":
            init_firebase(current_app)
            return FirebaseIdentityProvider()
        if provider == "supabase":
            return SupabaseIdentityProvider(_supabase_client(service_role=False))
        raise RuntimeError(f"Unknown AUTH_PROVIDER '{provider}'")
    return _cached("identity", build)


def get_cart():
    return CartService(session, get_store())


def get_wishlist():
    return WishlistService(session, get_store())


def get_checkout():
    return CheckoutService(
        get_store(),
        get_accounts(),
        tz=store_timezone(),
        horizon_days=current_app.config.get("DELIVERY_HORIZON_DAYS", 3),
    )


def current_account():
    account_id = session.get("user_id")
    if not account_id:
        return None
    return get_accounts().get(account_id)
