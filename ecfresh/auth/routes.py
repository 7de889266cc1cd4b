import hmac

from flask import Blueprint, request, session, current_app, jsonify, abort, url_for

from ecfresh.errors import IdentityError, AccountDirectoryError
from ecfresh.services.backends import get_identity_provider, get_accounts, current_account
from ecfresh.utils.validation import EMAIL_RE
from ecfresh.wrappers.wrappers import login_required

bp_auth = Blueprint("auth", __name__)


@bp_auth.route('/login', methods=['POST'])
def login():
    """
    Supabase: {"email": ...} sends a magic link.
    Firebase: {"idToken": ...} signs in straight away.
    """
    data = request.get_json(silent=True) or request.form.to_dict()
    provider = get_identity_provider()

    if data.get("idToken"):
        return _finish_login(provider, data)

    email = (data.get("email") or "").strip().lower()
    if not email:
        abort(400, "Please enter your email")
    if not EMAIL_RE.match(email):
        abort(400, "Please enter a valid email")

    try:
        provider.start_login(email, url_for("auth.callback", _external=True))
    except IdentityError as e:
        abort(502, str(e))

    return jsonify({"ok": True, "message": "Magic link sent! Check your email to sign in."})

@bp_auth.route('/auth/callback')
def callback():
    return _finish_login(get_identity_provider(), request.args.to_dict())

def _finish_login(provider, payload):
    try:
        email = provider.verify(payload)
    except IdentityError as e:
        abort(401, str(e))

    try:
        account = get_accounts().create_if_not_exists(email)
    except AccountDirectoryError:
        current_app.logger.exception("Account lookup failed for %s", email)
        abort(502, "Unable to load your account. Please try again.")

    session.clear()
    session["user_id"] = account.id
    session["email"] = account.email
    session["role"] = "admin" if account.is_admin else "customer"

    return jsonify({
        "ok": True,
        "user": account.to_dict(),
        "next": "/dashboard" if account.is_admin else "/",
    })

@bp_auth.route('/logout', methods=['POST'])
@login_required
def logout():
    session.clear()
    return jsonify({"ok": True, "message": "You have been logged out."})

@bp_auth.route('/me')
def me():
    account = current_account()
    if not account:
        return jsonify({"user": None, "role": session.get("role")})
    return jsonify({"user": account.to_dict(), "role": session.get("role", "customer")})

@bp_auth.route('/admin/login', methods=['POST'])
def admin_login():
    data = request.get_json(silent=True) or request.form.to_dict()
    password = data.get("password") or ""
    expected = current_app.config.get("ADMIN_PASSWORD")

    if not expected:
        abort(503, "Admin access is not configured.")
    if not hmac.compare_digest(password.encode(), expected.encode()):
        current_app.logger.warning("Failed admin login from %s", request.remote_addr)
        abort(401, "Incorrect password")

    session["role"] = "admin"
    return jsonify({"ok": True, "next": "/dashboard"})

@bp_auth.after_request
def allow_popups(resp):
    # Firebase sign-in runs in a popup
    resp.headers["Cross-Origin-Opener-Policy"] = "same-origin-allow-popups"
    return resp
