"""
session.py — Where the client keeps its Instagram token between runs.

The browser version kept one string in localStorage under "instagram_token".
Here the same key lives in a small JSON file, and the value is a TokenSession
so the expiry can be checked before a request instead of after a failed one.
"""

import json
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlparse

from pydantic import ValidationError

from .config import STORAGE_PATH
from .instagram_models import TokenSession, UserProfile

logger = logging.getLogger(__name__)

TOKEN_KEY = "instagram_token"


class NotAuthenticatedError(Exception):
    pass


class LoginError(Exception):
    pass


class TokenStore:
    """A tiny key/value file, the local-storage analogue."""

    def __init__(self, path: Path = STORAGE_PATH):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring unreadable storage file {self.path}")
                return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)

    def get(self, key: str = TOKEN_KEY) -> Optional[dict]:
        return self._read().get(key)

    def set(self, value: dict, key: str = TOKEN_KEY):
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str = TOKEN_KEY):
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


def handle_login_success(url_or_query: str, store: TokenStore) -> TokenSession:
    """
    Consume the backend's /login-success redirect: store the token and
    return the new session. Accepts the full URL or just its query string.
    """
    query = urlparse(url_or_query).query if "?" in url_or_query else url_or_query
    params = parse_qs(query.lstrip("?"))

    token = (params.get("token") or [""])[0]
    if not token:
        raise LoginError("Login redirect carried no token")

    # The user blob is informational; nothing reads it back out
    raw_user = (params.get("user") or [None])[0]
    if raw_user:
        try:
            user = UserProfile.model_validate_json(raw_user)
            logger.info(f"Logged in as @{user.username}")
        except ValidationError:
            logger.warning("Login redirect carried an unreadable user payload")

    session = TokenSession(access_token=token)
    store.set(session.model_dump(mode="json"))
    return session


def require_session(store: TokenStore) -> TokenSession:
    raw = store.get()
    if not raw:
        raise NotAuthenticatedError("No authentication token found")

    try:
        session = TokenSession.model_validate(raw)
    except ValidationError:
        store.remove()
        raise NotAuthenticatedError("No authentication token found")

    if session.is_expired():
        logger.info("Stored Instagram token has expired; log in again")
        store.remove()
        raise NotAuthenticatedError("No authentication token found")
    return session


def logout(store: TokenStore):
    store.remove()
