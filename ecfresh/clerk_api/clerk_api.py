import requests

DEFAULT_API_URL = "https://api.clerk.com/v1"

class ClerkError(Exception):
    pass

def _request(method, path, api_key, api_url=DEFAULT_API_URL, timeout=(5, 5), **kwargs):
    headers = {"Authorization": f"Bearer {api_key}"}
    try:
        r = requests.request(
            method,
            f"{api_url.rstrip('/')}{path}",
            headers=headers,
            timeout=timeout,
            **kwargs
        )
        r.raise_for_status()
        return r.json()
    except requests.RequestException as e:
        raise ClerkError(f"Request to Clerk failed: {e}")

def find_user_by_email(api_key, email, api_url=DEFAULT_API_URL):
    data = _request("GET", "/users", api_key, api_url, params={"email_address": email})
    return data[0] if data else None

def get_user(api_key, user_id, api_url=DEFAULT_API_URL):
    return _request("GET", f"/users/{user_id}", api_key, api_url)

def create_user(api_key, email, first_name=None, public_metadata=None, api_url=DEFAULT_API_URL):
    payload = {
        "email_address": [email],
        "skip_password_requirement": True,
        "public_metadata": public_metadata or {},
    }
    if first_name:
        payload["first_name"] = first_name
    return _request("POST", "/users", api_key, api_url, json=payload)

def update_user(api_key, user_id, first_name=None, api_url=DEFAULT_API_URL):
    return _request("PATCH", f"/users/{user_id}", api_key, api_url, json={"first_name": first_name})

def merge_public_metadata(api_key, user_id, public_metadata, api_url=DEFAULT_API_URL):
    """Clerk deep-merges the given keys into the user's existing metadata."""
    return _request(
        "PATCH", f"/users/{user_id}/metadata", api_key, api_url,
        json={"public_metadata": public_metadata}
    )

def primary_email(user):
    emails = user.get("email_addresses") or []
    primary_id = user.get("primary_email_address_id")
    for entry in emails:
        if entry.get("id") == primary_id:
            return entry.get("email_address")
    return emails[0].get("email_address") if emails else None
