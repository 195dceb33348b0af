# moneyflow/services/identity.py
import requests
from flask import current_app

from moneyflow.errors import UpstreamError


def _headers():
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {current_app.config['IDENTITY_API_KEY']}",
    }


def delete_identity_user(user_id: str) -> None:
    """Remove the user record held by the identity provider."""
    base = (current_app.config.get("IDENTITY_API_URL") or "").rstrip("/")
    if not base:
        raise UpstreamError("identity provider not configured")
    try:
        resp = requests.delete(
            f"{base}/users/{user_id}",
            headers=_headers(),
            timeout=current_app.config.get("IDENTITY_API_TIMEOUT", 20),
        )
    except requests.RequestException as e:
        raise UpstreamError(f"identity provider unreachable: {e}")
    # already gone upstream counts as done
    if resp.status_code >= 300 and resp.status_code != 404:
        raise UpstreamError(f"identity provider error {resp.status_code}: {resp.text[:200]}")
