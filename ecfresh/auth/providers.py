"""
Identity providers turn a login attempt into a verified email address.
Which one is active is chosen by AUTH_PROVIDER.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
import logging

from firebase_admin import auth as fb_auth

from ecfresh.errors import IdentityError

log = logging.getLogger(__name__)


class IdentityProvider(ABC):
    name = "base"

    def start_login(self, email: str, redirect_to: str) -> None:
        """Kick off an out-of-band login (magic link). No-op for token providers."""

    @abstractmethod
    def verify(self, payload: dict) -> str:
        """Return the verified email for a login payload or raise IdentityError."""
        raise NotImplementedError


class SupabaseIdentityProvider(IdentityProvider):
    name = "supabase"

    def __init__(self, client) -> None:
        self._client = client

    def start_login(self, email, redirect_to):
        try:
            self._client.auth.sign_in_with_otp({
                "email": email,
                "options": {"email_redirect_to": redirect_to, "should_create_user": True},
            })
        except Exception as e:
            log.warning("Magic link for %s failed: %s", email, e)
            raise IdentityError("Failed to send magic link. Please try again.")

    def verify(self, payload):
        token_hash = (payload or {}).get("token_hash")
        if not token_hash:
            raise IdentityError("Missing token.")
        try:
            res = self._client.auth.verify_otp({
                "token_hash": token_hash,
                "type": payload.get("type") or "email",
            })
        except Exception as e:
            log.warning("Magic link verification failed: %s", e)
            raise IdentityError("Invalid or expired link.")

        user = getattr(res, "user", None)
        email = getattr(user, "email", None)
        if not email:
            raise IdentityError("Invalid or expired link.")
        return email.lower()


class FirebaseIdentityProvider(IdentityProvider):
    name = "firebase"

    def verify(self, payload):
        id_token = (payload or {}).get("idToken")
        if not id_token:
            raise IdentityError("Missing idToken")
        try:
            decoded = fb_auth.verify_id_token(id_token)
        except Exception:
            raise IdentityError("Invalid or expired token")

        email = decoded.get("email")
        if not decoded.get("email_verified") or not email:
            raise IdentityError("A verified email is required")
        return email.lower()
